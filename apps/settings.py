from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, env_prefix="APP_")

    DATABASE_URL: str
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] | str = "*"

    FIREBASE_SERVICE_ACCOUNT_PATH: str | None = None
    FIREBASE_SERVICE_ACCOUNT_KEY: str | None = None
    FIREBASE_CHECK_REVOKED: bool = False

    VAPID_PUBLIC_KEY: str | None = None
    VAPID_PRIVATE_KEY: str | None = None
    VAPID_SUBJECT: str = "mailto:support@valet.example.com"
    PUSH_TTL_SECONDS: int = 3600

    CUSTOMER_BASE_URL: str = ""
    SLUG_CACHE_TTL_SECONDS: float = 60.0
    # When false, request-car accepts any token (legacy behaviour).
    ENFORCE_CUSTOMER_TOKEN: bool = True
    SLOT_ASSIGN_MAX_ATTEMPTS: int = 3

    @property
    def cors_origins(self) -> list[str]:
        if isinstance(self.CORS_ORIGINS, str):
            return [
                origin.strip()
                for origin in self.CORS_ORIGINS.split(",")
                if origin.strip()
            ]
        return self.CORS_ORIGINS

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)


settings = AppConfig()
