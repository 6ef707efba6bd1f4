"""Reusable FastAPI dependencies."""
import base64
import binascii
import logging
from typing import Optional, Tuple

from fastapi import Depends, Request

from examgate.auth import verify_admin
from examgate.config import Settings, get_settings as _get_settings
from examgate.errors import AuthRequired
from examgate.services import SessionLifecycle, check_gate
from examgate.store import AppConfig, ExamStore


logger = logging.getLogger("examgate.auth")


def get_settings(request: Request) -> Settings:
    """Return the settings the application was built with."""
    return getattr(request.app.state, "settings", None) or _get_settings()


def get_store(request: Request) -> ExamStore:
    """Return the store attached to the running application."""
    return request.app.state.store


def get_lifecycle(store: ExamStore = Depends(get_store)) -> SessionLifecycle:
    return SessionLifecycle(store)


def exam_gate(store: ExamStore = Depends(get_store)) -> AppConfig:
    """Reject candidate requests outside the exam window before any token lookup."""
    config = store.get_config()
    check_gate(config)
    return config


def parse_basic_auth(header: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split an ``Authorization: Basic`` header into (username, password).

    The payload is decoded as UTF-8 and split on the first colon, so passwords
    may contain colons and non-ASCII characters. Returns None when the header
    is missing or unreadable.
    """
    scheme, _, encoded = (header or "").partition(" ")
    if scheme.lower() != "basic" or not encoded.strip():
        return None
    try:
        raw = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None
    username, _, password = raw.partition(":")
    return username, password


def require_admin(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """Ensure the request carries the admin credential."""
    credentials = parse_basic_auth(request.headers.get("authorization"))
    if credentials is None:
        raise AuthRequired()
    username, password = credentials
    if not verify_admin(username, password, settings):
        logger.warning("Rejected admin credential for user %r", username)
        raise AuthRequired()
    return username
