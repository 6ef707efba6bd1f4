"""Create exam sessions from the command line and print their links."""
from __future__ import annotations

import argparse

from examgate.app import build_store
from examgate.config import get_settings
from examgate.routes.admin import exam_url


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("names", nargs="+", help="Candidate names, one session each")
    parser.add_argument(
        "--base-url", default="http://localhost:8000", help="Prefix for the printed exam links"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    store = build_store(settings)
    store.init()
    try:
        for name in args.names:
            record = store.create_session(name)
            link = args.base_url + exam_url(settings.EXAM_PAGE_PATH, record)
            print(f"{record.candidate_name}\t{link}")
    finally:
        store.close()


if __name__ == "__main__":
    main()
