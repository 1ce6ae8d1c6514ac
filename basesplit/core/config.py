import os
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "BaseSplit API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Database - individual vars (fallback)
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_USER: str = "basesplit"
    POSTGRES_PASSWORD: str = "basesplit_secret"
    POSTGRES_DB: str = "basesplit"

    @property
    def DATABASE_URL(self) -> str:
        # Check for DATABASE_URL env var directly (Render sets this)
        env_url = os.environ.get("DATABASE_URL")
        if env_url:
            # Convert postgres:// to postgresql+asyncpg:// for async driver
            if env_url.startswith("postgres://"):
                return env_url.replace("postgres://", "postgresql+asyncpg://", 1)
            elif env_url.startswith("postgresql://"):
                return env_url.replace("postgresql://", "postgresql+asyncpg://", 1)
            return env_url
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Chain
    CHAIN_ID: int = 8453  # Base mainnet
    CHAIN_RPC_URL: str = "https://mainnet.base.org"
    USDC_ADDRESS: str = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"

    # Wallet (EIP-5792 capable provider)
    WALLET_RPC_URL: str = "http://localhost:8545"
    ONCHAINKIT_API_KEY: Optional[str] = None
    CALLS_STATUS_POLL_SECONDS: float = 1.0

    # Polling
    BALANCE_POLL_SECONDS: float = 10.0
    REQUESTS_REFRESH_SECONDS: float = 30.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # Local cache
    CACHE_DIR: str = ".basesplit-cache"
    MAX_CACHED_ITEMS: int = 20

    # Amount bounds (USDC)
    MIN_AMOUNT: float = 0.01
    MAX_AMOUNT: float = 10000
    MAX_SPLIT_TOTAL: float = 100000

    @property
    def PAYMASTER_URL(self) -> Optional[str]:
        if not self.ONCHAINKIT_API_KEY:
            return None
        return f"https://api.developer.coinbase.com/rpc/v1/base/{self.ONCHAINKIT_API_KEY}"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
