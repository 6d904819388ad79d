from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, case_sensitive=False)

    # App
    app_name: str = "Eventhub API"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./app.db"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Sessions
    purge_expired_sessions_on_startup: bool = False


settings = Settings()
