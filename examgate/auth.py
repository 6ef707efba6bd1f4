"""Admin credential check for the ExamGate service."""
from __future__ import annotations

import hashlib
import secrets
from typing import Optional

from examgate.config import Settings, get_settings


def _digest(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


def verify_admin(username: str, password: str, settings: Optional[Settings] = None) -> bool:
    """Return True if the supplied pair matches the configured admin credential."""
    if not username or not password:
        return False
    settings = settings or get_settings()
    # Compare both fields every time so timing does not reveal which one was wrong
    user_ok = secrets.compare_digest(_digest(settings.ADMIN_USERNAME), _digest(username))
    pass_ok = secrets.compare_digest(_digest(settings.ADMIN_PASSWORD), _digest(password))
    return user_ok and pass_ok
