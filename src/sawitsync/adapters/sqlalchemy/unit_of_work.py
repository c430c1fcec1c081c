"""Engine lifecycle and the per-operation unit of work for the SQL stores.

``startup()`` binds one engine for the process and creates the tables; every
:class:`SqlAlchemyReconciliationUnitOfWork` then opens its own session on it.
Leaving the ``with`` block without :meth:`commit` discards the work.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal, Self

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from sawitsync.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from sawitsync.adapters.sqlalchemy.repositories import (
    SqlAlchemyAliasRepository,
    SqlAlchemyMasterEntityRepository,
    SqlAlchemyRecordRepository,
)
from sawitsync.config.storage import get_database_config
from sawitsync.domain.model import RecordType
from sawitsync.domain.ports.unit_of_work import ReconciliationRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """The SQL store was used before ``startup()`` or started twice."""


class _Database:
    def __init__(self) -> None:
        self.engine: Engine | None = None
        self.sessions: sessionmaker[Session] | None = None

    def bind(self, engine: Engine) -> None:
        self.engine = engine
        self.sessions = sessionmaker(bind=engine, expire_on_commit=False)

    def release(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.sessions = None

    def open_session(self) -> Session:
        if self.sessions is None:
            raise StartupError(
                "The SQL store is not started; call "
                "sawitsync.adapters.sqlalchemy.startup() first"
            )
        return self.sessions()


_database = _Database()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the engine (built from configuration when none is given) and create tables."""

    if _database.engine is not None:
        if not force:
            raise StartupError("The SQL store is already started; pass force=True to rebind")
        log.debug("Rebinding the SQL store to a new engine")

    if engine is None:
        engine = create_engine(database_uri or get_database_config().uri)
    start_mappers()
    create_all_tables(engine)
    _database.bind(engine)
    log.info("SQL store ready on %s", engine.url.render_as_string(hide_password=True))


def is_started() -> bool:
    return _database.engine is not None


def shutdown() -> None:
    _database.release()


class SqlAlchemyReconciliationUnitOfWork:
    """One session holding the master, alias and record repositories."""

    def __init__(self) -> None:
        self._session: Session | None = None
        self._repositories: ReconciliationRepositories | None = None

    def __enter__(self) -> Self:
        if self._session is not None:
            raise StartupError("This unit of work is already open")
        session = _database.open_session()
        self._session = session
        self._repositories = ReconciliationRepositories(
            masters=SqlAlchemyMasterEntityRepository(session),
            aliases=SqlAlchemyAliasRepository(session),
            records={kind: SqlAlchemyRecordRepository(session, kind) for kind in RecordType},
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session, self._session, self._repositories = self._session, None, None
        if session is not None:
            # close() detaches loaded objects before ending the transaction;
            # rollback() first would expire them and break reads after the block
            session.close()
        return False

    @property
    def repositories(self) -> ReconciliationRepositories:
        if self._repositories is None:
            raise StartupError("This unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self._open().commit()

    def rollback(self) -> None:
        self._open().rollback()

    def _open(self) -> Session:
        if self._session is None:
            raise StartupError("This unit of work is not open")
        return self._session
