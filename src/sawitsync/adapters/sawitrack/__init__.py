"""SawiTrack dashboard adapter."""

from __future__ import annotations

from .client import RECORD_PATHS, SawiTrackAPIError, SawiTrackClient
from .stores import SawiTrackAliasStore, SawiTrackMasterEntitySource, SawiTrackRecordStore

__all__ = [
    "RECORD_PATHS",
    "SawiTrackAPIError",
    "SawiTrackAliasStore",
    "SawiTrackClient",
    "SawiTrackMasterEntitySource",
    "SawiTrackRecordStore",
]
