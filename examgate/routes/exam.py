"""Candidate session routes. Every route here sits behind the exam gate."""
from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from examgate.dependencies import exam_gate, get_lifecycle
from examgate.errors import NotFoundError
from examgate.services import SessionLifecycle

router = APIRouter(dependencies=[Depends(exam_gate)])


class PresenceBody(BaseModel):
    status: Any = None


class SubmitBody(BaseModel):
    answers: Optional[List[Any]] = None
    clientMeta: Any = None


@router.get("/{token}")
def get_session(token: str, lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    return lifecycle.get_for_exam(token)


@router.post("/{token}/start")
def start_session(token: str, lifecycle: SessionLifecycle = Depends(get_lifecycle)):
    """Mark the session started; repeat calls return the original start time."""
    return lifecycle.start(token)


@router.post("/{token}/presence")
def presence_ping(
    token: str,
    body: PresenceBody | None = None,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    return lifecycle.presence(token, body.status if body else None)


@router.post("/{token}/submit")
def submit_answers(
    token: str,
    body: SubmitBody | None = None,
    lifecycle: SessionLifecycle = Depends(get_lifecycle),
):
    """Store answers once. Later submissions keep the first answers and timestamp."""
    body = body or SubmitBody()
    return lifecycle.submit(token, body.answers, body.clientMeta)


@router.api_route("/{rest:path}", methods=["GET", "POST"])
def unmatched_session_path(rest: str):
    """Any other path under the session prefix is treated as an unknown token."""
    raise NotFoundError()
