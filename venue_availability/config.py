from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Logging ---
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "logs"

    # --- Conflict checks ---
    # Proceed with a status change when the record snapshot cannot be loaded.
    CONFLICT_CHECK_FAIL_OPEN: bool = True
    REPORT_DATE_FORMAT: str = "%Y-%m-%d"

    SEED_SAMPLE_DATA: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
    )


settings = Settings()
