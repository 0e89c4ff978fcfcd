from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    cron_secret: str = Field(default="", alias="CRON_SECRET")
    app_env: str = Field(default="production", alias="APP_ENV")
    app_url: str = Field(default="http://localhost:3000", alias="APP_URL")

    resend_api_key: str = Field(default="", alias="RESEND_API_KEY")
    resend_from_email: str = Field(default="EduTrack <onboarding@resend.dev>", alias="RESEND_FROM_EMAIL")
    notifier_timeout_sec: int = Field(default=20, alias="NOTIFIER_TIMEOUT_SEC")

    store_path: str = Field(default="data/store.json", alias="STORE_PATH")

    scheduler_enabled: bool = Field(default=False, alias="SCHEDULER_ENABLED")
    digest_time: str = Field(default="07:00", alias="DIGEST_TIME")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def is_development(self) -> bool:
        return self.app_env.strip().lower() == "development"


settings = Settings()
