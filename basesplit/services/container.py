"""
Wires the long-lived collaborators of the application together.

One container per process: the database engine and session factory, the
query layer, the local cache, the JSON-RPC clients for the chain and the
wallet provider, the balance reader and the session manager built on top
of them.
"""

from typing import Optional

import httpx

from basesplit.core.config import Settings, settings as default_settings
from basesplit.core.database import create_engine_and_sessionmaker, init_models
from basesplit.core.logging import get_logger
from basesplit.services.balance import BalanceReader
from basesplit.services.cache import LocalCache
from basesplit.services.queries import QueryService
from basesplit.services.rpc import JsonRpcClient
from basesplit.services.session import SessionManager
from basesplit.services.wallet import WalletClient

logger = get_logger(__name__)


class ServiceContainer:
    def __init__(
        self,
        config: Settings = default_settings,
        database_url: Optional[str] = None,
        chain_http_client: Optional[httpx.AsyncClient] = None,
        wallet_http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config
        self.database_url = database_url or config.DATABASE_URL
        self.engine, self.session_factory = create_engine_and_sessionmaker(self.database_url)

        self.queries = QueryService(self.session_factory)
        self.cache = LocalCache(config.CACHE_DIR, config.MAX_CACHED_ITEMS)

        self.chain_rpc = JsonRpcClient(config.CHAIN_RPC_URL, client=chain_http_client)
        self.wallet_rpc = JsonRpcClient(config.WALLET_RPC_URL, client=wallet_http_client)

        self.balance_reader = BalanceReader(
            self.chain_rpc, config.USDC_ADDRESS, poll_interval_sec=config.BALANCE_POLL_SECONDS
        )
        self.wallet = WalletClient(
            self.wallet_rpc,
            chain_id=config.CHAIN_ID,
            token_address=config.USDC_ADDRESS,
            paymaster_url=config.PAYMASTER_URL,
            status_poll_interval_sec=config.CALLS_STATUS_POLL_SECONDS,
        )
        self.session = SessionManager(
            self.queries, self.cache, self.balance_reader, self.wallet, config=config
        )

    async def startup(self) -> None:
        if self.database_url.startswith("sqlite"):
            # No migrations for local sqlite files
            await init_models(self.engine)
        logger.info(
            "services_started",
            chain_id=self.config.CHAIN_ID,
            sponsored=self.config.PAYMASTER_URL is not None,
        )

    async def shutdown(self) -> None:
        if self.session.is_authenticated:
            await self.session.close()
        await self.balance_reader.stop()
        await self.chain_rpc.aclose()
        await self.wallet_rpc.aclose()
        await self.engine.dispose()
        logger.info("services_stopped")
