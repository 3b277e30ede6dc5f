"""Health endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_enrichment
from ..schemas import HealthStatus, ProviderStatus
from ..services.enrichment import MetadataEnrichmentCache

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
def get_health(enrichment: MetadataEnrichmentCache = Depends(get_enrichment)) -> HealthStatus:
    """Return service heartbeat information and provider availability."""

    return HealthStatus(
        providers=ProviderStatus(
            credits=enrichment.credits_enabled, ratings=enrichment.ratings_enabled
        )
    )
