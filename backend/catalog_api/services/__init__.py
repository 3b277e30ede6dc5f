"""Service layer for catalog ordering, slugs, curation and metadata enrichment."""

from .actors import ActorDirectory
from .banner import BannerService
from .catalog_service import CatalogService
from .discovery import DiscoveryService
from .enrichment import CacheState, MetadataEnrichmentCache
from .latest_new import LatestNewService
from .listing import assemble_page
from .ordering import CatalogOrderIndex
from .reorder import PageReorderer, PagesMover
from .slugs import SlugAssigner, slugify

__all__ = [
    "ActorDirectory",
    "BannerService",
    "CatalogService",
    "CacheState",
    "DiscoveryService",
    "MetadataEnrichmentCache",
    "LatestNewService",
    "assemble_page",
    "CatalogOrderIndex",
    "PageReorderer",
    "PagesMover",
    "SlugAssigner",
    "slugify",
]
