"""Tuning knobs for spreadsheet imports."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from sawitsync.domain.model import UnresolvedPolicy
from sawitsync.domain.similarity import SimilarityMetric

from .env import env_float, env_int, env_optional_float, env_str
from .errors import ConfigurationError

DEFAULT_CHUNK_SIZE = 50
DEFAULT_CONCURRENCY = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.70
DEFAULT_WRITE_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0


@dataclass(frozen=True, slots=True)
class ImportConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    similarity_metric: SimilarityMetric = SimilarityMetric.LEVENSHTEIN
    unresolved_policy: UnresolvedPolicy = UnresolvedPolicy.FAIL
    write_attempts: int = DEFAULT_WRITE_ATTEMPTS
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    write_timeout_seconds: float | None = None


def get_import_config() -> ImportConfig:
    threshold = env_float("SAWITSYNC_SIMILARITY_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD)
    if threshold > 1.0:
        raise ConfigurationError(
            f"SAWITSYNC_SIMILARITY_THRESHOLD must be within [0, 1], got {threshold}"
        )
    return ImportConfig(
        chunk_size=env_int("SAWITSYNC_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        concurrency=env_int("SAWITSYNC_CONCURRENCY", DEFAULT_CONCURRENCY),
        similarity_threshold=threshold,
        similarity_metric=_parse_enum(
            SimilarityMetric, "SAWITSYNC_SIMILARITY_METRIC", SimilarityMetric.LEVENSHTEIN
        ),
        unresolved_policy=_parse_enum(
            UnresolvedPolicy, "SAWITSYNC_UNRESOLVED_POLICY", UnresolvedPolicy.FAIL
        ),
        write_attempts=env_int("SAWITSYNC_WRITE_ATTEMPTS", DEFAULT_WRITE_ATTEMPTS),
        retry_delay_seconds=env_float(
            "SAWITSYNC_RETRY_DELAY_SECONDS", DEFAULT_RETRY_DELAY_SECONDS
        ),
        write_timeout_seconds=env_optional_float(
            "SAWITSYNC_WRITE_TIMEOUT_SECONDS", minimum=0.001
        ),
    )


def _parse_enum[TEnum: StrEnum](enum_type: type[TEnum], name: str, default: TEnum) -> TEnum:
    raw = env_str(name)
    if raw is None:
        return default
    try:
        return enum_type(raw.lower())
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_type)
        raise ConfigurationError(f"{name} must be one of: {choices} (got {raw!r})") from exc
