# main.py

import asyncio
import sys
from pathlib import Path

from pdf_locator.application.search_session import SearchSession, search_and_wait
from pdf_locator.config import DATA_DIRECTORY
from pdf_locator.domain.errors import LocatorError
from pdf_locator.domain.match_engine import MatchEngine
from pdf_locator.infrastructure.asyncio_scheduler import AsyncioScheduler
from pdf_locator.infrastructure.pdf_text_layer import PdfTextLayerLoader
from pdf_locator.infrastructure.subject_table import build_subject_filter
from pdf_locator.interface.cli import (
    ask_action,
    display_error,
    display_search_state,
    display_welcome_banner,
    prompt_for_page,
    prompt_for_query,
)
from pdf_locator.logging_config import configure_logging


def main() -> None:
    configure_logging()

    if len(sys.argv) < 2:
        display_error("Usage: python main.py <file.pdf>")
        sys.exit(1)

    # ── 1. Initialize infrastructure ─────────────────────────────────────────
    try:
        loader = PdfTextLayerLoader(_resolve_pdf_path(sys.argv[1]))
        subject_filter = build_subject_filter()
    except LocatorError as error:
        display_error(str(error))
        sys.exit(1)

    session = SearchSession(
        scheduler=AsyncioScheduler(),
        match_engine=MatchEngine(subject_filter, find_all=True),
    )
    page_count = loader.page_count()
    display_welcome_banner(Path(sys.argv[1]).name, page_count)

    # ── 2. Interactive search loop ────────────────────────────────────────────
    page_number = 1
    while True:
        page_number = prompt_for_page(page_count, default=page_number)
        query = prompt_for_query()

        try:
            container = loader.load_page(page_number)
        except LocatorError as error:
            display_error(str(error))
            continue

        state = asyncio.run(search_and_wait(session, query, container))
        display_search_state(state)

        action = ask_action(state.total_matches > 1)
        while action in ("n", "p"):
            if action == "n":
                session.next_match()
            else:
                session.prev_match()
            display_search_state(session.state)
            action = ask_action(True)

        session.clear()
        if action == "q":
            break


def _resolve_pdf_path(argument: str) -> Path:
    """Accept either a path or a file name inside the data directory."""
    path = Path(argument)
    if path.exists():
        return path
    return Path(DATA_DIRECTORY) / argument


if __name__ == "__main__":
    main()
