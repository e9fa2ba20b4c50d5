from .cache import AIResponseCache, CacheStats, generate_with_cache

__all__ = ["AIResponseCache", "CacheStats", "generate_with_cache"]
