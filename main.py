"""
ProjectFlow — Entry Point.

Single entry point: `python main.py` bootstraps the store against the
configured REST API (falling back to the durable cache, then the demo
dataset), sends any pending background syncs and logs a state summary.
"""

import asyncio
import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from projectflow.adapters.http_remote import HttpRemoteClient
from projectflow.adapters.log_notifier import LogNotifier
from projectflow.adapters.static_session import StaticSessionProvider
from projectflow.config import settings
from projectflow.core.bootstrap import Bootstrapper
from projectflow.core.store import Store
from projectflow.core.sync_queue import SyncQueue
from projectflow.data.cache import DurableCache

logger = logging.getLogger("projectflow")


async def run() -> None:
    logging.getLogger().setLevel(settings.LOG_LEVEL)

    cache = DurableCache()
    session = StaticSessionProvider.from_settings()
    async with HttpRemoteClient(access_token=settings.SESSION_ACCESS_TOKEN) as remote:
        sync = SyncQueue(remote, session)
        store = Store(cache, sync)
        bootstrapper = Bootstrapper(store, remote, session, cache, LogNotifier())
        bootstrapper.attach()

        state = await bootstrapper.start()
        processed = await sync.flush()

        logger.info(
            "Ready (%s data): user=%s projects=%d tasks=%d customers=%d "
            "time_entries=%d incomes=%d",
            bootstrapper.source,
            state.user.id if state.user else None,
            len(state.projects), len(state.tasks), len(state.customers),
            len(state.time_entries), len(state.incomes),
        )
        if processed:
            logger.info(
                "Background sync: %d sent, %d failed",
                len(processed), len(sync.failed),
            )
        bootstrapper.detach()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
