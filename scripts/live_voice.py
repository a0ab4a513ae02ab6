from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

from scholar.core.config import AssistantConfig, LiveVoiceConfig
from scholar.core.factory import build_live_session
from scholar.core.log import configure_logging
from scholar.core.models import Role
from scholar.live.session import MAX_RETRIES_MESSAGE
from scholar.live.state import STATUS_TEXT, LiveStatus
from scholar.storage.database import DocumentDatabase
from scholar.storage.local_store import LocalStore
from scholar.storage.seed import initialize_data

logger = logging.getLogger("scholar.scripts.live_voice")


def _print_status(status: LiveStatus, error: str) -> None:
    line = STATUS_TEXT.get(status, status.value)
    print(f"[{line}] {error}" if error else f"[{line}]")


async def run(role: Role) -> None:
    cfg = AssistantConfig.from_env()
    database = DocumentDatabase(cfg.data_dir / "documents.db")
    initialize_data(database, LocalStore(cfg.data_dir / "settings.json"))

    session = build_live_session(
        database.get_all(),
        role=role,
        config=LiveVoiceConfig.from_env(),
        app_name=cfg.app_name,
        on_status=_print_status,
    )
    try:
        await session.start()
        while True:
            status = await session.wait_for(LiveStatus.ERROR, LiveStatus.CLOSED)
            if status is LiveStatus.CLOSED:
                break
            if not await session.retry() and session.error_message == MAX_RETRIES_MESSAGE:
                print(MAX_RETRIES_MESSAGE)
                break
    finally:
        await session.close()
        database.close()


def main() -> None:
    load_dotenv()
    configure_logging()

    parser = argparse.ArgumentParser(description="Hands-free voice conversation with SIT Scholar.")
    parser.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.PUBLIC.value,
        help="Access level used to pick the records the assistant may speak about.",
    )
    args = parser.parse_args()

    try:
        asyncio.run(run(Role(args.role)))
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    main()
