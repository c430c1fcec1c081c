"""HTTP client for the SawiTrack dashboard API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

import httpx
from pydantic import TypeAdapter

from sawitsync.adapters.http_resilience import ResilientClient, build_sync_client
from sawitsync.domain.model import RecordType

from .schema import (
    AngkutPayload,
    BatchAliasResponse,
    CompanyAliasPayload,
    CompanyPayload,
    EstatePayload,
    PanenPayload,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from datetime import date

    from sawitsync.config import ResilienceConfig, SawiTrackConfig

log = getLogger(__name__)

_COMPANIES = TypeAdapter(list[CompanyPayload])
_ESTATES = TypeAdapter(list[EstatePayload])
_ALIASES = TypeAdapter(list[CompanyAliasPayload])
_ANGKUT = TypeAdapter(list[AngkutPayload])
_PANEN = TypeAdapter(list[PanenPayload])

RECORD_PATHS: dict[RecordType, str] = {
    RecordType.TRANSPORT: "/angkut",
    RecordType.HARVEST: "/panen",
}


class SawiTrackAPIError(RuntimeError):
    """Raised when the dashboard answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _default_sync_client_factory(config: ResilienceConfig) -> httpx.Client:
    return build_sync_client(config)


def _default_async_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class SawiTrackClient:
    """Thin typed wrapper over the dashboard endpoints an import touches.

    Reads and master-data writes are blocking and sequential. Record writes
    are async so the apply engine can keep several in flight; open the async
    side with :meth:`record_session` inside the running event loop.
    """

    config: SawiTrackConfig
    sync_client_factory: Callable[[ResilienceConfig], httpx.Client] = field(
        default=_default_sync_client_factory
    )
    async_client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_async_client_factory
    )
    _client: httpx.Client | None = None

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> SawiTrackClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    # Master data ---------------------------------------------------------------

    def list_companies(self) -> list[CompanyPayload]:
        return _COMPANIES.validate_python(self._get("/companies"))

    def create_company(self, name: str) -> CompanyPayload:
        # the dashboard insists on an address; imports never know one
        payload = self._post("/companies", {"company_name": name, "address": "-"})
        return CompanyPayload.model_validate(payload)

    def list_estates(self) -> list[EstatePayload]:
        return _ESTATES.validate_python(self._get("/estates"))

    def create_estate(self, estate_id: str, name: str) -> EstatePayload:
        payload = self._post(
            "/estates",
            {"_id": estate_id, "estate_name": name, "divisions": []},
        )
        return EstatePayload.model_validate(payload)

    # Company aliases -------------------------------------------------------------

    def list_company_aliases(self) -> list[CompanyAliasPayload]:
        return _ALIASES.validate_python(self._get("/company-aliases"))

    def save_company_aliases(self, mappings: Mapping[str, str]) -> BatchAliasResponse:
        body = {
            "mappings": [
                {"aliasName": alias_name, "companyId": company_id}
                for alias_name, company_id in mappings.items()
            ]
        }
        return BatchAliasResponse.model_validate(self._post("/company-aliases/batch", body))

    # Records ---------------------------------------------------------------------

    def list_angkut(self, *, date_panen: date) -> list[AngkutPayload]:
        payload = self._get("/angkut", params={"date_panen": date_panen.isoformat()})
        return _ANGKUT.validate_python(payload)

    def list_panen(self, *, date_panen: date) -> list[PanenPayload]:
        payload = self._get("/panen", params={"date_panen": date_panen.isoformat()})
        return _PANEN.validate_python(payload)

    def record_session(self) -> ResilientClient:
        return self.async_client_factory(self.config.resilience)

    @staticmethod
    async def create_record(
        session: ResilientClient,
        record_type: RecordType,
        body: Mapping[str, object],
    ) -> str:
        response = await session.post(RECORD_PATHS[record_type], json=dict(body))
        created = _json_or_raise(response)
        # bulk-capable endpoints answer with a list even for one document
        if isinstance(created, list) and created:
            created = cast(list[object], created)[0]
        if not isinstance(created, dict) or "_id" not in created:
            raise SawiTrackAPIError(f"Unexpected create response from {response.url}")
        return str(cast(dict[str, object], created)["_id"])

    @staticmethod
    async def update_record(
        session: ResilientClient,
        record_type: RecordType,
        record_id: str,
        body: Mapping[str, object],
    ) -> None:
        response = await session.put(f"{RECORD_PATHS[record_type]}/{record_id}", json=dict(body))
        _json_or_raise(response)

    # Plumbing --------------------------------------------------------------------

    def _sync(self) -> httpx.Client:
        if self._client is None:
            self._client = self.sync_client_factory(self.config.resilience)
        return self._client

    def _get(self, path: str, *, params: Mapping[str, str] | None = None) -> object:
        response = self._sync().get(path, params=dict(params) if params else None)
        return _json_or_raise(response)

    def _post(self, path: str, body: Mapping[str, object]) -> object:
        response = self._sync().post(path, json=dict(body))
        return _json_or_raise(response)


def _json_or_raise(response: httpx.Response) -> object:
    if response.is_success:
        return response.json()
    detail: object = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = cast(dict[str, object], body).get("error")
    message = detail or response.reason_phrase or "request failed"
    log.warning(
        "SawiTrack %s %s -> %s: %s",
        response.request.method,
        response.request.url,
        response.status_code,
        message,
    )
    raise SawiTrackAPIError(
        f"{response.request.method} {response.request.url.path} failed "
        f"({response.status_code}): {message}",
        status_code=response.status_code,
    )
