"""Settings for the sync service, read by pydantic-settings.

Precedence, highest first: constructor arguments, the OS keychain (CRM
login only), environment variables, ``.env``, secrets directory.
"""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Settings source that answers only for the CRM credential fields."""

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        key = field_name.upper()
        value = get_credential(key) if key in CREDENTIAL_KEYS else None
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        found = {}
        for name, info in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(info, name)
            if value is not None:
                found[key] = value
        return found


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        keychain = KeychainSettingsSource(settings_cls)
        return init_settings, keychain, env_settings, dotenv_settings, file_secret_settings

    LOG_LEVEL: str = "INFO"

    # Configuration store and event log share one database
    DATABASE_URL: str = "sqlite:///./cet_sync.db"

    # Upload endpoint: https://<region prefix>.<CET_API_DOMAIN><CET_UPLOAD_PATH>
    CET_API_DOMAIN: str = "api.clevertap.com"
    CET_UPLOAD_PATH: str = "/1/upload"
    CET_REQUEST_TIMEOUT_SECONDS: float = 120.0
    CET_SOURCE_MARKER: str = "SFDC"

    EVENT_LOG_WORKERS: int = 1

    HISTORICAL_SYNC_CHUNK_SIZE: int = 200
    HISTORICAL_SYNC_EMIT_SUMMARY: bool = True

    # CRM login, needed by historical sync only
    SF_USERNAME: str = ""
    SF_PASSWORD: str = ""
    SF_SECURITY_TOKEN: str = ""
    SF_DOMAIN: str = ""

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if str(v).upper() not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {v!r}")
        return str(v).upper()

    @field_validator("HISTORICAL_SYNC_CHUNK_SIZE")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        # 2000 is the CRM's largest query page
        if not 1 <= v <= 2000:
            raise ValueError(f"HISTORICAL_SYNC_CHUNK_SIZE must be between 1 and 2000, got {v}")
        return v

    @field_validator("SF_DOMAIN", mode="before")
    @classmethod
    def normalize_sf_domain(cls, v: str) -> str:
        """``login`` is the production default, so it is stored as blank."""
        v = (v or "").strip().lower()
        return "" if v == "login" else v


settings = Settings()
