from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = Field(default="Cash Drawer", alias="APP_NAME")
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    database_url: str = Field(default="sqlite:///./cashdrawer.db", alias="DATABASE_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    audit_file: str | None = Field(default=None, alias="AUDIT_FILE")
    reprobe_delay_seconds: float = Field(default=1.5, alias="REPROBE_DELAY_SECONDS")
    list_default_limit: int = Field(default=50, alias="LIST_DEFAULT_LIMIT")
    list_max_limit: int = Field(default=200, alias="LIST_MAX_LIMIT")
    service_url: str = Field(default="http://127.0.0.1:8010", alias="SERVICE_URL")
    http_timeout: float = Field(default=10.0, alias="HTTP_TIMEOUT")

    class Config:
        env_file = ".env"


settings = Settings()
