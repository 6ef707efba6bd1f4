"""
Persistence interface for the exam window and candidate sessions.

Two backends implement it: ``SqlExamStore`` (see ``sql_store``) for shared
deployments and ``MemoryExamStore`` below for single-process runs and tests.
Callers never need to know which one is active.
"""
from __future__ import annotations

import math
import copy
import re
import secrets
import threading
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional

from examgate.errors import ValidationError


STATUS_CREATED = "created"
STATUS_STARTED = "started"
STATUS_SUBMITTED = "submitted"

DEFAULT_CANDIDATE_NAME = "Candidate"
MAX_CANDIDATE_NAME = 200
MAX_PRESENCE_STATUS = 64
TOKEN_BYTES = 32
# Largest integer a JSON number carries exactly; also fits a signed 64-bit column
MAX_WINDOW_VALUE = 2**53 - 1

# token_urlsafe(32) always yields 43 characters from this alphabet
_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{43}$")

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def looks_like_token(token: Optional[str]) -> bool:
    return bool(token) and _TOKEN_RE.match(token) is not None


def tokens_match(expected: str, supplied: str) -> bool:
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def clean_candidate_name(name: Any) -> str:
    text = str(name).strip() if name is not None else ""
    return text[:MAX_CANDIDATE_NAME] or DEFAULT_CANDIDATE_NAME


def clean_presence_status(status: Any) -> str:
    if status is None or status == "":
        return "unknown"
    return str(status)[:MAX_PRESENCE_STATUS]


def _non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be a non-negative number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise ValidationError(f"{name} must be a non-negative number") from None
    if not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a non-negative number")
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValidationError(f"{name} must be a finite whole number")
        value = int(value)
    if value < 0:
        raise ValidationError(f"{name} must be a non-negative number")
    if value > MAX_WINDOW_VALUE:
        raise ValidationError(f"{name} must not exceed {MAX_WINDOW_VALUE}")
    return value


def validate_window(open_at_utc: Any, duration_seconds: Any) -> tuple[int, int]:
    """Normalise admin window input or raise ``ValidationError``."""
    return (
        _non_negative_int(open_at_utc, "openAtUtc"),
        _non_negative_int(duration_seconds, "durationSeconds"),
    )


@dataclass(frozen=True)
class AppConfig:
    """The global exam window as seen at ``server_now``."""

    open_at_utc: int = 0
    duration_seconds: int = 0
    version: int = 0
    server_now: int = 0

    @property
    def end_at_utc(self) -> int:
        return self.open_at_utc + self.duration_seconds * 1000

    def to_dict(self) -> Dict[str, int]:
        return {
            "openAtUtc": self.open_at_utc,
            "durationSeconds": self.duration_seconds,
            "serverNow": self.server_now,
        }


@dataclass
class SessionRecord:
    """A candidate exam session."""

    session_id: str
    token: str
    candidate_name: str
    created_at: int
    status: str = STATUS_CREATED
    started_at: Optional[int] = None
    submitted_at: Optional[int] = None
    answers: Optional[List[Any]] = None
    client_meta: Any = None
    last_presence_status: Optional[str] = None
    last_presence_at: Optional[int] = None

    def exam_view(self) -> Dict[str, Any]:
        """Fields a candidate may see about their own session."""
        return {
            "sessionId": self.session_id,
            "candidateName": self.candidate_name,
            "status": self.status,
            "startedAt": self.started_at,
            "submittedAt": self.submitted_at,
        }


class ExamStore(ABC):
    """Source of truth for the exam window and all sessions."""

    backend_name = "abstract"

    def __init__(self, clock: Clock = now_ms):
        self.clock = clock

    def init(self) -> None:
        """Prepare the backend (create tables etc.)."""

    def close(self) -> None:
        """Release backend resources."""

    # -- config -----------------------------------------------------------
    @abstractmethod
    def get_config(self) -> AppConfig:
        ...

    @abstractmethod
    def update_config(self, open_at_utc: Any, duration_seconds: Any) -> AppConfig:
        ...

    # -- registry ---------------------------------------------------------
    @abstractmethod
    def create_session(self, candidate_name: Any) -> SessionRecord:
        ...

    @abstractmethod
    def get_session(self, token: str) -> Optional[SessionRecord]:
        ...

    @abstractmethod
    def start_session(self, token: str) -> Optional[SessionRecord]:
        """Move created -> started once; return the session as it now stands."""

    @abstractmethod
    def presence_ping(self, token: str, status: Any) -> bool:
        ...

    @abstractmethod
    def submit_answers(
        self, token: str, answers: Optional[List[Any]], client_meta: Any
    ) -> Optional[SessionRecord]:
        """Finalise the session once; later calls leave it untouched."""

    # -- reporting --------------------------------------------------------
    @abstractmethod
    def list_sessions(self, status: Optional[str] = None) -> List[SessionRecord]:
        """All sessions (optionally of one status) in creation order."""


class MemoryExamStore(ExamStore):
    """Thread-safe in-process storage. Data is lost on restart.

    Records are deep-copied in and out so callers never hold the stored objects.
    """

    backend_name = "memory"

    def __init__(self, clock: Clock = now_ms):
        super().__init__(clock)
        self._config = AppConfig()
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def get_config(self) -> AppConfig:
        with self._lock:
            return replace(self._config, server_now=self.clock())

    def update_config(self, open_at_utc: Any, duration_seconds: Any) -> AppConfig:
        open_at, duration = validate_window(open_at_utc, duration_seconds)
        with self._lock:
            self._config = AppConfig(
                open_at_utc=open_at,
                duration_seconds=duration,
                version=self._config.version + 1,
            )
            return replace(self._config, server_now=self.clock())

    def create_session(self, candidate_name: Any) -> SessionRecord:
        record = SessionRecord(
            session_id=str(uuid.uuid4()),
            token=generate_token(),
            candidate_name=clean_candidate_name(candidate_name),
            created_at=self.clock(),
        )
        with self._lock:
            self._sessions[record.token] = record
            return copy.deepcopy(record)

    def _find(self, token: str) -> Optional[SessionRecord]:
        if not looks_like_token(token):
            return None
        record = self._sessions.get(token)
        if record is None or not tokens_match(record.token, token):
            return None
        return record

    def get_session(self, token: str) -> Optional[SessionRecord]:
        with self._lock:
            record = self._find(token)
            return copy.deepcopy(record) if record else None

    def start_session(self, token: str) -> Optional[SessionRecord]:
        with self._lock:
            record = self._find(token)
            if record is None:
                return None
            if record.status == STATUS_CREATED:
                record.status = STATUS_STARTED
                record.started_at = self.clock()
            return copy.deepcopy(record)

    def presence_ping(self, token: str, status: Any) -> bool:
        with self._lock:
            record = self._find(token)
            if record is None:
                return False
            record.last_presence_status = clean_presence_status(status)
            record.last_presence_at = self.clock()
            return True

    def submit_answers(
        self, token: str, answers: Optional[List[Any]], client_meta: Any
    ) -> Optional[SessionRecord]:
        with self._lock:
            record = self._find(token)
            if record is None:
                return None
            if record.status != STATUS_SUBMITTED:
                record.answers = copy.deepcopy(list(answers or []))
                record.client_meta = copy.deepcopy(client_meta)
                record.submitted_at = self.clock()
                record.status = STATUS_SUBMITTED
            return copy.deepcopy(record)

    def list_sessions(self, status: Optional[str] = None) -> List[SessionRecord]:
        with self._lock:
            # dicts keep insertion order, which is creation order here
            return [
                copy.deepcopy(record)
                for record in self._sessions.values()
                if status is None or record.status == status
            ]
