from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "INVTRACK"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite+pysqlite:///./invtrack.db"
    METRICS_ENABLED: bool = True
    BULK_SAMPLE_SIZE: int = 5
    BULK_MAX_QUANTITY: int = 10000
    BULK_CLAIM_CHUNK_SIZE: int = 500
    RETURN_POLICY: Literal["ORIGINAL_HOLDER", "ANY_EMPLOYEE"] = "ORIGINAL_HOLDER"
    ITEMS_LIST_MAX_PAGE_SIZE: int = 200


settings = Settings()
