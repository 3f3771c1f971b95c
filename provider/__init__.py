from provider.client import ProviderClient, shard_players
from provider.exceptions import ProviderError
from provider.fallback import (
    FallbackSource,
    FixtureFallback,
    NullFallback,
    ObjectStoreFallback,
    scores_from_document,
)
from provider.normalizer import (
    merge_statistics_with_scores,
    normalize_payload,
    parse_display_score,
    process_tee_time,
)

__all__ = [
    "ProviderClient",
    "shard_players",
    "ProviderError",
    "FallbackSource",
    "FixtureFallback",
    "NullFallback",
    "ObjectStoreFallback",
    "scores_from_document",
    "merge_statistics_with_scores",
    "normalize_payload",
    "parse_display_score",
    "process_tee_time",
]
