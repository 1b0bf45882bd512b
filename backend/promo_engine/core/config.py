from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/promo_engine.db"

    # Money
    CURRENCY_DECIMAL_PLACES: int = 2

    # Evaluation
    EVALUATION_TIMEOUT_SECONDS: float = 2.0
    CHECKOUT_MAX_ATTEMPTS: int = 3

    # Stacking policy: percentage/fixed promotions on flash-priced lines
    ALLOW_FLASH_SALE_PROMOTION_STACKING: bool = False


settings = Settings()
