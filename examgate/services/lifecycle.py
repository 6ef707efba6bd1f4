"""Candidate-side session transitions: view, start, presence and submit."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from examgate.errors import NotFoundError
from examgate.store import ExamStore


logger = logging.getLogger("examgate.lifecycle")


def _short(token: str) -> str:
    return f"{(token or '')[:8]}..."


class SessionLifecycle:
    """Runs the created -> started -> submitted state machine against a store."""

    def __init__(self, store: ExamStore):
        self.store = store

    def get_for_exam(self, token: str) -> Dict[str, Any]:
        record = self.store.get_session(token)
        if record is None:
            logger.warning("Session lookup failed for token %s", _short(token))
            raise NotFoundError()
        return record.exam_view()

    def start(self, token: str) -> Dict[str, Any]:
        record = self.store.start_session(token)
        if record is None:
            logger.warning("Start rejected for token %s", _short(token))
            raise NotFoundError()
        logger.info("Session %s started at %s", record.session_id, record.started_at)
        return {"startedAt": record.started_at}

    def presence(self, token: str, status: Any) -> Dict[str, bool]:
        if not self.store.presence_ping(token, status):
            raise NotFoundError()
        return {"accepted": True}

    def submit(self, token: str, answers: Optional[List[Any]], client_meta: Any) -> Dict[str, Any]:
        record = self.store.submit_answers(token, answers, client_meta)
        if record is None:
            logger.warning("Submit rejected for token %s", _short(token))
            raise NotFoundError()
        logger.info("Session %s submitted at %s", record.session_id, record.submitted_at)
        return {"submittedAt": record.submitted_at}
