"""Router exports for the Catalog API."""
from . import actors, admin, health, movies

__all__ = ["actors", "admin", "health", "movies"]
