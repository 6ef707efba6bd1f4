"""Utility script to scaffold a local .env file."""
from __future__ import annotations

import secrets
from pathlib import Path

ENV_TEMPLATE = """# Environment configuration for ExamGate
ADMIN_USERNAME=admin
ADMIN_PASSWORD={password}
STORE_BACKEND=sql
DATABASE_URL=sqlite:///./examgate.db
OPENAI_API_KEY=
DEBUG=true
"""


def main() -> None:
    env_path = Path(".env")
    if env_path.exists():
        print(".env already exists. No changes made.")
        return

    password = secrets.token_urlsafe(16)
    env_path.write_text(ENV_TEMPLATE.format(password=password), encoding="utf-8")
    print("Created .env with a generated ADMIN_PASSWORD. Please review the file before deployment.")


if __name__ == "__main__":
    main()
