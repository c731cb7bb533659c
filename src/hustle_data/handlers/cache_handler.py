"""HTTP handlers for cache administration and health."""

from fastapi import HTTPException, status

from hustle_data.dto import CacheStatsResponse, ClearCacheResponse, HealthCheckResponse
from hustle_data.protocols import CacheStore, DocumentStore


class CacheHandler:
    """HTTP handlers for the shared cache store.

    Example:
        ```python
        handler = CacheHandler(cache=container.cache, documents=container.documents)

        @app.get("/cache/stats", response_model=CacheStatsResponse)
        async def get_stats():
            return await handler.get_stats()
        ```
    """

    def __init__(self, cache: CacheStore, documents: DocumentStore) -> None:
        """Initialize the cache handler.

        Args:
            cache: The shared cache store (required).
            documents: The document store, for health checks (required).
        """
        self._cache = cache
        self._documents = documents

    async def get_stats(self) -> CacheStatsResponse:
        """Handle GET /cache/stats requests.

        Returns:
            CacheStatsResponse with cache statistics

        Raises:
            HTTPException: If an error occurs while fetching stats
        """
        try:
            stats = self._cache.get_stats()

            return CacheStatsResponse(
                total_entries=stats.get("total_entries", 0),
                hits=stats.get("hits", 0),
                misses=stats.get("misses", 0),
                hit_rate=stats.get("hit_rate", 0.0),
                oldest_entry_age=stats.get("oldest_entry_age"),
            )

        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to get stats: {e}",
            ) from e

    async def clear_cache(self) -> ClearCacheResponse:
        """Handle DELETE /cache requests.

        Returns:
            ClearCacheResponse with the number of entries removed
        """
        count = self._cache.clear_all()
        return ClearCacheResponse(
            success=True,
            deleted_count=count,
            message="Cache cleared successfully",
        )

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        Returns:
            HealthCheckResponse with backend reachability
        """
        cache_healthy = self._cache.health_check()
        documents_healthy = self._documents.health_check()

        return HealthCheckResponse(
            status="healthy" if cache_healthy and documents_healthy else "unhealthy",
            cache_healthy=cache_healthy,
            documents_healthy=documents_healthy,
        )
