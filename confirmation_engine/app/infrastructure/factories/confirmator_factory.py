from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine
from web3 import AsyncHTTPProvider, AsyncWeb3

from confirmation_engine.app.application.services.confirmator import Confirmator
from confirmation_engine.app.config import settings
from confirmation_engine.app.domain.errors import UnknownBackendError
from confirmation_engine.app.domain.models import ConfirmatorConfig
from confirmation_engine.app.domain.ports.out import (
    BlockTracker,
    ChainHeadProvider,
    EventStore,
    NotificationChannel,
    ReceiptFetcher,
)
from confirmation_engine.app.infrastructure.adapters.memory import (
    InMemoryBlockTracker,
    InMemoryEventStore,
)
from confirmation_engine.app.infrastructure.adapters.sqlalchemy_block_tracker import (
    SqlAlchemyBlockTracker,
)
from confirmation_engine.app.infrastructure.adapters.sqlalchemy_event_store import (
    SqlAlchemyEventStore,
)
from confirmation_engine.app.infrastructure.fetchers.web3_chain import (
    Web3ChainHeadProvider,
    Web3ReceiptFetcher,
)


@dataclass(frozen=True)
class Persistence:
    store: EventStore
    block_tracker: BlockTracker


PersistenceFactory = Callable[[AsyncEngine | None, str], Persistence]

_PERSISTENCE_REGISTRY: Dict[str, PersistenceFactory] = {
    "sqlalchemy": lambda engine, namespace: Persistence(
        store=SqlAlchemyEventStore(engine=engine),
        block_tracker=SqlAlchemyBlockTracker(engine=engine, namespace=namespace),
    ),
    "memory": lambda engine, namespace: Persistence(
        store=InMemoryEventStore(),
        block_tracker=InMemoryBlockTracker(namespace),
    ),
}


def persistence_factory(
    *,
    backend: str,
    engine: AsyncEngine | None,
    namespace: str,
) -> Persistence:
    try:
        factory = _PERSISTENCE_REGISTRY[backend]
    except KeyError:
        raise UnknownBackendError("persistence", backend)
    if backend == "sqlalchemy" and engine is None:
        raise ValueError("sqlalchemy backend requires an engine")
    return factory(engine, namespace)


def create_async_web3(rpc_url: str | None = None) -> AsyncWeb3:
    return AsyncWeb3(
        AsyncHTTPProvider(
            rpc_url or settings.rpc_url,
            request_kwargs={"timeout": settings.rpc_timeout_seconds},
        )
    )


def web3_chain_adapters(w3: AsyncWeb3) -> tuple[ReceiptFetcher, ChainHeadProvider]:
    return Web3ReceiptFetcher(w3=w3), Web3ChainHeadProvider(w3=w3)


def confirmator_factory(
    *,
    persistence: Persistence,
    receipts: ReceiptFetcher,
    channel: NotificationChannel,
    config: ConfirmatorConfig,
) -> Confirmator:
    """
    Wire a Confirmator for one contract.

    Configuration is passed in explicitly; the confirmator itself never
    reads settings.
    """
    return Confirmator(
        store=persistence.store,
        receipts=receipts,
        block_tracker=persistence.block_tracker,
        channel=channel,
        config=config,
    )
