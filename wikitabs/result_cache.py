from wikitabs.config import Settings, settings as default_settings
from wikitabs.logging import get_logger
from wikitabs.metrics import metrics
from wikitabs.types import CachedResult
from wikitabs.utils.cache import LruTtlCache

logger = get_logger(__name__)


class ResultCache:
    """Fingerprint -> finalized generation. Writes overwrite; entries are never invalidated explicitly."""

    def __init__(self, *, max_size: int, ttl_seconds: int = 0) -> None:
        self._cache: LruTtlCache[CachedResult] = LruTtlCache(max_size=max_size, ttl_seconds=ttl_seconds)

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "ResultCache":
        cfg = cfg or default_settings
        return cls(max_size=cfg.result_cache_max_size, ttl_seconds=cfg.result_cache_ttl_seconds)

    @property
    def stats(self):
        return self._cache.stats

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._cache

    def lookup(self, fingerprint: str) -> CachedResult | None:
        entry = self._cache.get(fingerprint)
        if entry is None:
            metrics.result_cache_misses += 1
            return None
        metrics.result_cache_hits += 1
        logger.debug("Result cache hit fingerprint=%s", fingerprint)
        return entry.model_copy(deep=True)

    def store(self, fingerprint: str, entry: CachedResult) -> None:
        self._cache.set(fingerprint, entry.model_copy(deep=True))
        metrics.result_cache_evictions = self._cache.stats.evictions
