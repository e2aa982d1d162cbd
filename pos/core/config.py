from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal

from pos.services.settlement import SettlementConfig


class Settings(BaseSettings):
    APP_NAME: str = "Counter POS"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "counter_pos"

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # Store identity (printed on receipts)
    STORE_NAME: str = "My Store"
    STORE_ADDRESS: str | None = None
    STORE_PHONE: str | None = None
    STORE_TAX_ID: str | None = None

    # Billing
    CURRENCY: str = "INR"
    TAX_PERCENTAGE: float = 0.0
    SPLIT_TOLERANCE: float = 0.5

    # Receipts
    RECEIPT_SINK: Literal["none", "file", "email"] = "none"
    RECEIPT_DIR: str = "receipts"
    RECEIPT_EMAIL_TO: str | None = None

    # Email
    MAIL_USERNAME: str | None = None
    MAIL_PASSWORD: str | None = None
    MAIL_FROM: str | None = None
    MAIL_PORT: int = 587
    MAIL_SERVER: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def settlement_config(self) -> SettlementConfig:
        """Billing knobs handed explicitly to every pricing/settlement call."""
        return SettlementConfig(
            currency=self.CURRENCY,
            tax_percentage=self.TAX_PERCENTAGE,
            split_tolerance=self.SPLIT_TOLERANCE,
        )


settings = Settings()
