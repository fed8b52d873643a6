import json
import os

from typing import Any, Optional

from pydantic import PostgresDsn, field_validator
from pydantic.fields import FieldInfo, computed_field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class JsonConfigSettingsSource(PydanticBaseSettingsSource):
    """Reads settings from the JSON file named by SETTINGS_JSON_FILE (secrets mounts)."""

    def _load(self) -> dict[str, Any]:
        path = os.environ.get("SETTINGS_JSON_FILE")
        if not path or not os.path.exists(path):
            return {}
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        field_value = self._load().get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:  # noqa: D102
        secrets = self._load()
        return {
            field_name: secrets[field_name]
            for field_name in self.settings_cls.model_fields
            if secrets.get(field_name) is not None
        }


class Settings(BaseSettings):

    SERVER_ADDRESS: Optional[str] = None
    SERVER_PORT: int = int(os.getenv("PORT", 8000))
    BACKEND_CORS_ORIGINS: list[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            if v.startswith("["):
                return json.loads(v)
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    DATABASE_URL: Optional[str] = None
    POSTGRES_SERVER: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_DB: Optional[str] = None
    POSTGRES_POOL_SIZE: int = 10
    POSTGRES_MAX_OVERFLOW: int = 0

    @computed_field
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            db_url = self.DATABASE_URL
            # Managed hosts hand out plain postgresql:// URLs
            if db_url.startswith("postgresql://"):
                db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
            return db_url

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_SERVER, self.POSTGRES_DB]):
            return ""

        return str(
            PostgresDsn.build(
                scheme="postgresql+psycopg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_SERVER,
                path=f"{self.POSTGRES_DB or ''}",
            )
        )

    # Store adapter
    STORE_CONNECT_TIMEOUT_SECONDS: int = 5
    STORE_STATEMENT_TIMEOUT_SECONDS: float = 5.0
    STORE_MAX_RETRIES: int = 2
    STORE_RETRY_BACKOFF_SECONDS: float = 1.0

    # Vote ledger
    MAX_VOTES_PER_VOTER: int = 5
    PLACEHOLDER_EMAIL_DOMAIN: str = "placeholder"

    # Shared secret for the catalog and migration back-office routes; unset disables them
    OPERATOR_API_KEY: Optional[str] = None

    WATCH_FILES: bool = False
    LOG_LEVEL: str = "info"  # critical, error, warning, info, debug, trace

    class Config:
        env_file = "local.env"
        case_sensitive = True
        extra = "allow"
        env_ignore_empty = True

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, JsonConfigSettingsSource(settings_cls), dotenv_settings

settings = Settings()
