"""
Runtime configuration.

Values come from the environment, then from a `.env` file in the working
directory. Environment variables always win.
"""

from functools import lru_cache
from typing import List

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TokenInfo(BaseModel):
    """Token metadata served to the frontend."""

    address: str
    name: str
    symbol: str
    decimals: int
    logo: str


class Settings(BaseSettings):
    """ASP server settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Storage
    database_url: str = "sqlite:///asp.db"

    # Chain
    starknet_rpc_url: str = "https://starknet-sepolia-rpc.publicnode.com"
    pool_address: str = Field(
        "0x0", validation_alias=AliasChoices("ZYLITH_POOL_ADDRESS", "POOL_ADDRESS")
    )
    start_block: int = 0
    deposit_event_name: str = "Deposit"
    rpc_timeout: float = 30.0

    # Synchronizer
    poll_interval: float = 2.0
    event_page_size: int = 1000
    sync_paginate: bool = True
    sync_enabled: bool = True

    # Tree
    tree_height: int = 25

    # HTTP
    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    # Tokens
    token0_address: str = "0x0"
    token0_name: str = "TOKEN0"
    token0_symbol: str = "TOKEN0"
    token0_decimals: int = 18
    token0_logo: str = ""
    token1_address: str = "0x0"
    token1_name: str = "TOKEN1"
    token1_symbol: str = "TOKEN1"
    token1_decimals: int = 18
    token1_logo: str = ""

    @property
    def tokens(self) -> List[TokenInfo]:
        return [
            TokenInfo(
                address=self.token0_address,
                name=self.token0_name,
                symbol=self.token0_symbol,
                decimals=self.token0_decimals,
                logo=self.token0_logo,
            ),
            TokenInfo(
                address=self.token1_address,
                name=self.token1_name,
                symbol=self.token1_symbol,
                decimals=self.token1_decimals,
                logo=self.token1_logo,
            ),
        ]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get process-wide settings."""
    return Settings()
