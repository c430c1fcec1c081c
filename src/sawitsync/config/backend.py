"""SawiTrack REST backend configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_str, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

SAWITRACK_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class SawiTrackConfig:
    """Holds connection settings for the SawiTrack dashboard API."""

    base_url: str
    resilience: ResilienceConfig


def get_sawitrack_config(*, resilience: ResilienceConfig | None = None) -> SawiTrackConfig:
    values = require_env_vars(("SAWITRACK_API_URL",))
    base_url = values["SAWITRACK_API_URL"].rstrip("/")
    token = env_str("SAWITRACK_API_TOKEN")
    headers = {"Authorization": f"Bearer {token}"} if token else None
    return SawiTrackConfig(
        base_url=base_url,
        resilience=resilience
        or ResilienceConfig(
            name="sawitrack",
            base_url=base_url,
            timeout_seconds=SAWITRACK_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
            default_headers=headers,
        ),
    )
