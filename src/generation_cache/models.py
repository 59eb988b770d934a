from dataclasses import dataclass


@dataclass
class CacheMetrics:
    """Track counters for generation cache operations."""

    lookups: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    coalesced: int = 0
    generations: int = 0
    failures: int = 0
    total_generation_time_ms: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.lookups == 0:
            return 0.0
        return self.cache_hits / self.lookups

    @property
    def avg_generation_time_ms(self) -> float:
        """Calculate average generation time."""
        if self.generations == 0:
            return 0.0
        return self.total_generation_time_ms / self.generations

    def record_hit(self) -> None:
        """Record a cache hit."""
        self.lookups += 1
        self.cache_hits += 1

    def record_miss(self) -> None:
        """Record a cache miss."""
        self.lookups += 1
        self.cache_misses += 1

    def record_coalesced(self) -> None:
        """Record a caller that joined an in-flight generation."""
        self.coalesced += 1

    def record_generation(self, duration_ms: float) -> None:
        """Record a completed generation."""
        self.generations += 1
        self.total_generation_time_ms += duration_ms

    def record_failure(self) -> None:
        """Record a failed generation."""
        self.failures += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "lookups": self.lookups,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "hit_rate": self.hit_rate,
            "coalesced": self.coalesced,
            "generations": self.generations,
            "failures": self.failures,
            "avg_generation_time_ms": self.avg_generation_time_ms,
        }
