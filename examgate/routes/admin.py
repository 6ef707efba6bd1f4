"""Admin routes: exam window, session links and reporting."""
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from examgate.config import Settings
from examgate.dependencies import get_settings, get_store, require_admin
from examgate.services import list_candidates, list_results
from examgate.store import ExamStore, SessionRecord

logger = logging.getLogger("examgate.admin")

router = APIRouter(dependencies=[Depends(require_admin)])


class ConfigBody(BaseModel):
    openAtUtc: Any = None
    durationSeconds: Any = None


class CreateSessionBody(BaseModel):
    candidateName: Any = None


@router.get("/config")
def read_config(store: ExamStore = Depends(get_store)):
    return store.get_config().to_dict()


@router.post("/config")
def update_config(body: ConfigBody | None = None, store: ExamStore = Depends(get_store)):
    """Replace the exam window. Both fields are required."""
    body = body or ConfigBody()
    config = store.update_config(body.openAtUtc, body.durationSeconds)
    logger.info(
        "Exam window set: openAtUtc=%s durationSeconds=%s (version %s)",
        config.open_at_utc,
        config.duration_seconds,
        config.version,
    )
    return config.to_dict()


def exam_url(page_path: str, record: SessionRecord) -> str:
    """Candidate link carrying the session token."""
    query = urlencode({"token": record.token, "sid": record.session_id})
    return f"{page_path}?{query}"


@router.post("/create-session")
def create_session(
    body: CreateSessionBody | None = None,
    store: ExamStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    record = store.create_session(body.candidateName if body else None)
    logger.info("Created session %s for %r", record.session_id, record.candidate_name)
    return {
        "token": record.token,
        "sessionId": record.session_id,
        "url": exam_url(settings.EXAM_PAGE_PATH, record),
    }


@router.get("/results")
def results(store: ExamStore = Depends(get_store)):
    return list_results(store)


@router.get("/candidates")
def candidates(store: ExamStore = Depends(get_store)):
    return list_candidates(store)
