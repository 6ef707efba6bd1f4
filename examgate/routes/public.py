"""Ungated public routes: exam window info and the writing scorer."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from examgate.dependencies import get_store
from examgate.services import writing_checks
from examgate.store import ExamStore

router = APIRouter()


class ScoreWritingBody(BaseModel):
    text: Any = None


@router.get("/api/config")
def public_config(store: ExamStore = Depends(get_store)) -> dict[str, int]:
    """Exam window and server clock so clients can render countdowns."""
    return store.get_config().to_dict()


@router.post("/api/score-writing")
async def score_writing(request: Request, body: ScoreWritingBody | None = None):
    """Relay essay text to the external scoring service and add the local checks."""
    text = body.text if body else None
    result = await request.app.state.scorer.score(text)
    return {"result": result, "checks": writing_checks(str(text))}
