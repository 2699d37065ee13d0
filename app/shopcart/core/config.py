from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "shopcart"
    DATABASE_URL: str = "sqlite+pysqlite:///./shopcart.db"
    CART_STORE_BACKEND: str = "database"
    DEFAULT_INSTANCE: str = "default"
    DEFAULT_TAX_RATE: int = 21
    DEFAULT_DISCOUNT_RATE: int = 0
    DEFAULT_DISCOUNT_FIXED: int = 0
    CART_EVENTS_PERSIST: bool = True
    METRICS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"

settings = Settings()
