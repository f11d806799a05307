from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Create missing tables at startup (local SQLite or throwaway databases)
    auto_create_tables: bool = Field(False, alias="AUTO_CREATE_TABLES")

    # Page size for GET /batches when the caller does not send ?limit=
    batch_page_limit_default: int = Field(100, alias="BATCH_PAGE_LIMIT_DEFAULT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
