import asyncio
import sys
from pathlib import Path

from confirmation_engine.app.application.services.record_pending_event import (
    record_pending_events_from_file,
)
from confirmation_engine.app.config import settings
from confirmation_engine.app.infrastructure.adapters.sqlalchemy_event_store import SqlAlchemyEventStore
from confirmation_engine.app.infrastructure.db.engine import create_app_async_engine


PROJECT_ROOT = Path(__file__).resolve().parents[1]
EVENTS_PATH = PROJECT_ROOT / "pending_events.json"


async def seed_pending_events(path: Path, database_url: str | None = None) -> None:
    """
    Record decoded contract events (web3 EventData dumped as JSON) as pending.

    database_url overrides settings.database_url, e.g. for a local sqlite file.
    """
    engine = create_app_async_engine(url=database_url)
    try:
        count = await record_pending_events_from_file(
            store=SqlAlchemyEventStore(engine=engine),
            path=path,
            target_confirmations={},
            default_target_confirmation=settings.default_target_confirmation,
        )
        print(f"Recorded {count} pending events from {path}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    events_path = Path(sys.argv[1]) if len(sys.argv) > 1 else EVENTS_PATH
    url = sys.argv[2] if len(sys.argv) > 2 else None
    asyncio.run(seed_pending_events(events_path, url))
