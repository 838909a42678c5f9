"""SQLAlchemy unit of work for the local account store."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from userbridge.adapters.sqlalchemy.mappings import create_all_tables, start_mappers
from userbridge.adapters.sqlalchemy.migrations import upgrade_head
from userbridge.adapters.sqlalchemy.repositories import SqlAlchemyLocalAccountRepository
from userbridge.config import get_database_config
from userbridge.domain.errors import ConflictError
from userbridge.domain.ports.unit_of_work import DirectoryRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)

UNIQUE_COLUMNS = ("external_id", "username", "email")


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    engine: Engine | None = None
    sessions: sessionmaker[Session] | None = None

    def require_sessions(self) -> sessionmaker[Session]:
        if self.sessions is None:
            raise StartupError(
                "Local account store not initialised; call "
                "userbridge.adapters.sqlalchemy.unit_of_work.startup() first."
            )
        return self.sessions


_STATE = _AdapterState()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
    migrate: bool = True,
) -> None:
    """Bind the adapter to an engine and bring the schema up to date.

    With ``migrate=False`` the tables are created from the metadata instead of
    through Alembic.
    """

    if _STATE.engine is not None and not force:
        raise StartupError("Local account store already initialised; pass force=True")

    if engine is None:
        database = get_database_config(uri=database_uri)
        engine = create_engine(
            database.uri, echo=database.echo, future=True, **database.engine_options
        )
    start_mappers()
    if migrate:
        upgrade_head(engine=engine)
    else:
        create_all_tables(engine)

    _STATE.engine = engine
    # Entities stay readable after commit; the lifecycle builds views from them.
    _STATE.sessions = sessionmaker(bind=engine, expire_on_commit=False)
    log.debug("Local account store bound to %s", engine.url.render_as_string())


def configured_engine() -> Engine | None:
    return _STATE.engine


def is_started() -> bool:
    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and forget it (mostly for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None
    _STATE.sessions = None


def _conflicting_column(exc: IntegrityError) -> str | None:
    message = str(exc.orig)
    for column in UNIQUE_COLUMNS:
        if column in message:
            return column
    return None


class SqlAlchemyDirectoryUnitOfWork:
    """One session over the local account table.

    Leaving the block closes the session and rolls back anything that was not
    committed. A unique violation at commit time becomes ``ConflictError``.
    """

    def __init__(self) -> None:
        self._sessions = _STATE.require_sessions()
        self._session: Session | None = None
        self._repositories: DirectoryRepositories | None = None

    def __enter__(self) -> SqlAlchemyDirectoryUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        self._session = self._sessions()
        self._repositories = DirectoryRepositories(
            accounts=SqlAlchemyLocalAccountRepository(self._session)
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> DirectoryRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            column = _conflicting_column(exc)
            log.info("Local insert rejected, %s already in use", column or "unique value")
            raise ConflictError(
                f"Local account {column or 'record'} already exists", column=column
            ) from exc

    def rollback(self) -> None:
        self.session.rollback()
