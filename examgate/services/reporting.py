"""Read-only admin projections over the session registry."""
from __future__ import annotations

from typing import Any, Dict, List

from examgate.store import STATUS_SUBMITTED, ExamStore, SessionRecord


def _metadata(record: SessionRecord) -> Dict[str, Any]:
    return {
        "sessionId": record.session_id,
        "candidateName": record.candidate_name,
        "status": record.status,
        "createdAt": record.created_at,
    }


def result_row(record: SessionRecord) -> Dict[str, Any]:
    row = _metadata(record)
    row.update(
        {
            "startedAt": record.started_at,
            "submittedAt": record.submitted_at,
            "answers": record.answers or [],
            "clientMeta": record.client_meta,
        }
    )
    return row


def candidate_row(record: SessionRecord) -> Dict[str, Any]:
    row = _metadata(record)
    row.update(
        {
            "token": record.token,
            "startedAt": record.started_at,
            "submittedAt": record.submitted_at,
            "lastPresenceStatus": record.last_presence_status,
            "lastPresenceAt": record.last_presence_at,
        }
    )
    return row


def list_results(store: ExamStore) -> List[Dict[str, Any]]:
    """Submitted attempts, oldest session first."""
    return [result_row(record) for record in store.list_sessions(status=STATUS_SUBMITTED)]


def list_candidates(store: ExamStore) -> List[Dict[str, Any]]:
    """Every session with its status and last presence report, oldest first."""
    return [candidate_row(record) for record in store.list_sessions()]
