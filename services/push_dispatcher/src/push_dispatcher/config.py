from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.enums import InvalidationBackend


class DispatchConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PUSH_")

    log_level: str = "INFO"
    workers: int = Field(default=4, ge=1)
    max_attempts: int = Field(default=6, ge=1)
    backoff_step_seconds: float = Field(default=1.5, ge=0)


class FcmConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FCM_", populate_by_name=True)

    # Falls back to the project_id embedded in the service account file.
    project_id: str | None = None
    base_url: str = "https://fcm.googleapis.com"
    timeout_seconds: float = 5.0
    validate_only: bool = False
    credentials_file: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GOOGLE_APPLICATION_CREDENTIALS", "FCM_CREDENTIALS_FILE"
        ),
    )


class InvalidationConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="INVALIDATION_")

    backend: InvalidationBackend = InvalidationBackend.LOG
