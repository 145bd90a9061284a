"""Configuration management using Pydantic Settings"""

from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Policy corpus
    database_url: str = "sqlite:///./delivery_shield.db"
    policy_search_limit: int = 5
    policy_search_candidates: int = 100
    embedding_dimensions: int = 768

    # Transfer gateway (on-chain stablecoin payouts)
    transfer_gateway_url: str = "http://localhost:8003"
    transfer_api_key: Optional[str] = None
    transfer_timeout_seconds: float = 10.0
    stablecoin_currency: str = "USDC"

    # Reasoning provider
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-pro"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"

    # Settlement
    credit_bonus_multiplier: Decimal = Decimal("1.5")

    # Demo ledger account, seeded at startup
    seed_demo_ledger: bool = True
    demo_user_id: str = "user-123"
    demo_wallet_address: str = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
    demo_credit_balance: Decimal = Decimal("5.00")

    # Service
    service_name: str = "delivery-shield"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0


settings = Settings()
