from collections import deque
from dataclasses import dataclass
from typing import Any


@dataclass
class GenerationEvent:
    strategy: str
    elapsed_ms: float
    error: bool


class MetricsTracker:
    def __init__(self) -> None:
        self.events = deque(maxlen=5000)
        self.generations_started = 0
        self.result_cache_hits = 0
        self.result_cache_misses = 0
        self.result_cache_evictions = 0
        self.superseded_events = 0
        self.diagram_requests = 0
        self.diagram_failures = 0

    def record_generation(self, *, strategy: str, elapsed_ms: float, error: bool = False) -> None:
        self.events.append(GenerationEvent(strategy=strategy, elapsed_ms=elapsed_ms, error=error))

    @staticmethod
    def _percentile(values: list[float], p: float) -> float:
        if not values:
            return 0.0
        arr = sorted(values)
        idx = min(int(len(arr) * p), len(arr) - 1)
        return round(arr[idx], 2)

    def _cache_rate(self, hits: int, misses: int) -> float:
        total = hits + misses
        return round(hits / total, 4) if total else 0.0

    def stats(self) -> dict[str, Any]:
        latencies = [e.elapsed_ms for e in self.events if not e.error]
        by_strategy: dict[str, int] = {}
        for e in self.events:
            by_strategy[e.strategy] = by_strategy.get(e.strategy, 0) + 1
        return {
            "generations_started": self.generations_started,
            "generations_completed": len(self.events),
            "latency_ms": {
                "p50": self._percentile(latencies, 0.5),
                "p95": self._percentile(latencies, 0.95),
            },
            "by_strategy": by_strategy,
            "result_cache": {
                "hit_rate": self._cache_rate(self.result_cache_hits, self.result_cache_misses),
                "hits": self.result_cache_hits,
                "misses": self.result_cache_misses,
                "evictions": self.result_cache_evictions,
            },
            "superseded_events": self.superseded_events,
            "diagram_requests": self.diagram_requests,
            "diagram_failures": self.diagram_failures,
            "errors": sum(1 for e in self.events if e.error),
        }

    def reset(self) -> None:
        self.__init__()


metrics = MetricsTracker()
