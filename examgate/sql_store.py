"""SQLAlchemy backend for the exam store (SQLite by default, PostgreSQL in production)."""
from __future__ import annotations

import logging
import uuid
from typing import Any, List, Optional

from sqlalchemy import JSON, BigInteger, Integer, String, create_engine, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from examgate.errors import InternalError
from examgate.store import (
    STATUS_CREATED,
    STATUS_STARTED,
    STATUS_SUBMITTED,
    AppConfig,
    Clock,
    ExamStore,
    SessionRecord,
    clean_candidate_name,
    clean_presence_status,
    generate_token,
    looks_like_token,
    now_ms,
    tokens_match,
    validate_window,
)


logger = logging.getLogger("examgate.sql_store")

CONFIG_ROW_ID = 1


class Base(DeclarativeBase):
    pass


class AppConfigRow(Base):
    """Single-row table holding the global exam window."""

    __tablename__ = "app_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    open_at_utc: Mapped[int] = mapped_column(BigInteger, default=0)
    duration_seconds: Mapped[int] = mapped_column(BigInteger, default=0)
    version: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[int] = mapped_column(BigInteger, default=0)


class ExamSessionRow(Base):
    __tablename__ = "exam_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(36), unique=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    candidate_name: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(16), default=STATUS_CREATED, index=True)
    created_at: Mapped[int] = mapped_column(BigInteger)
    started_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    submitted_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    answers: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    client_meta: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    last_presence_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    last_presence_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def to_record(self) -> SessionRecord:
        return SessionRecord(
            session_id=self.session_id,
            token=self.token,
            candidate_name=self.candidate_name,
            created_at=self.created_at,
            status=self.status,
            started_at=self.started_at,
            submitted_at=self.submitted_at,
            answers=self.answers,
            client_meta=self.client_meta,
            last_presence_status=self.last_presence_status,
            last_presence_at=self.last_presence_at,
        )


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite gets a busy timeout so concurrent writers queue up."""
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False, "timeout": 15}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


class SqlExamStore(ExamStore):
    """Store backed by a relational database shared across server instances."""

    backend_name = "sql"

    def __init__(self, url: str, clock: Clock = now_ms):
        super().__init__(clock)
        self.engine = build_engine(url)
        self._session_factory = sessionmaker(self.engine, expire_on_commit=False)

    def init(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.info("SQL store ready (%s)", self.engine.url.get_backend_name())

    def close(self) -> None:
        self.engine.dispose()

    def _db(self):
        return self._session_factory()

    def _lookup(self, db, token: str) -> Optional[ExamSessionRow]:
        if not looks_like_token(token):
            return None
        row = db.scalars(select(ExamSessionRow).where(ExamSessionRow.token == token)).first()
        if row is None or not tokens_match(row.token, token):
            return None
        return row

    # -- config -----------------------------------------------------------
    def get_config(self) -> AppConfig:
        try:
            with self._db() as db:
                row = db.get(AppConfigRow, CONFIG_ROW_ID)
                server_now = self.clock()
                if row is None:
                    return AppConfig(server_now=server_now)
                return AppConfig(
                    open_at_utc=row.open_at_utc,
                    duration_seconds=row.duration_seconds,
                    version=row.version,
                    server_now=server_now,
                )
        except SQLAlchemyError as exc:
            logger.exception("Failed to read exam config")
            raise InternalError() from exc

    def update_config(self, open_at_utc: Any, duration_seconds: Any) -> AppConfig:
        open_at, duration = validate_window(open_at_utc, duration_seconds)
        try:
            with self._db() as db, db.begin():
                row = db.get(AppConfigRow, CONFIG_ROW_ID, with_for_update=True)
                if row is None:
                    row = AppConfigRow(id=CONFIG_ROW_ID, version=0)
                    db.add(row)
                row.open_at_utc = open_at
                row.duration_seconds = duration
                row.version = (row.version or 0) + 1
                row.updated_at = self.clock()
                version = row.version
        except SQLAlchemyError as exc:
            logger.exception("Failed to update exam config")
            raise InternalError() from exc
        return AppConfig(open_at, duration, version, self.clock())

    # -- registry ---------------------------------------------------------
    def create_session(self, candidate_name: Any) -> SessionRecord:
        row = ExamSessionRow(
            session_id=str(uuid.uuid4()),
            token=generate_token(),
            candidate_name=clean_candidate_name(candidate_name),
            created_at=self.clock(),
            status=STATUS_CREATED,
        )
        try:
            with self._db() as db, db.begin():
                db.add(row)
            return row.to_record()
        except SQLAlchemyError as exc:
            logger.exception("Failed to create session")
            raise InternalError() from exc

    def get_session(self, token: str) -> Optional[SessionRecord]:
        try:
            with self._db() as db:
                row = self._lookup(db, token)
                return row.to_record() if row else None
        except SQLAlchemyError as exc:
            logger.exception("Failed to load session")
            raise InternalError() from exc

    def _transition(self, token: str, from_statuses: tuple[str, ...], values: dict[str, Any]):
        """Conditionally update one session; the WHERE clause is the compare-and-set."""
        if not looks_like_token(token):
            return None
        try:
            with self._db() as db, db.begin():
                db.execute(
                    update(ExamSessionRow)
                    .where(ExamSessionRow.token == token)
                    .where(ExamSessionRow.status.in_(from_statuses))
                    .values(**values)
                )
            with self._db() as db:
                row = self._lookup(db, token)
                return row.to_record() if row else None
        except SQLAlchemyError as exc:
            logger.exception("Failed to update session state")
            raise InternalError() from exc

    def start_session(self, token: str) -> Optional[SessionRecord]:
        return self._transition(
            token,
            (STATUS_CREATED,),
            {"status": STATUS_STARTED, "started_at": self.clock()},
        )

    def presence_ping(self, token: str, status: Any) -> bool:
        if not looks_like_token(token):
            return False
        try:
            with self._db() as db, db.begin():
                result = db.execute(
                    update(ExamSessionRow)
                    .where(ExamSessionRow.token == token)
                    .values(
                        last_presence_status=clean_presence_status(status),
                        last_presence_at=self.clock(),
                    )
                )
                return result.rowcount > 0
        except SQLAlchemyError as exc:
            logger.exception("Failed to record presence")
            raise InternalError() from exc

    def submit_answers(
        self, token: str, answers: Optional[List[Any]], client_meta: Any
    ) -> Optional[SessionRecord]:
        return self._transition(
            token,
            (STATUS_CREATED, STATUS_STARTED),
            {
                "status": STATUS_SUBMITTED,
                "answers": list(answers or []),
                "client_meta": client_meta,
                "submitted_at": self.clock(),
            },
        )

    # -- reporting --------------------------------------------------------
    def list_sessions(self, status: Optional[str] = None) -> List[SessionRecord]:
        query = select(ExamSessionRow).order_by(ExamSessionRow.created_at, ExamSessionRow.id)
        if status is not None:
            query = query.where(ExamSessionRow.status == status)
        try:
            with self._db() as db:
                return [row.to_record() for row in db.scalars(query)]
        except SQLAlchemyError as exc:
            logger.exception("Failed to list sessions")
            raise InternalError() from exc
