from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Consent server
    CONSENT_SERVER_URL: str = "https://adservice.google.com/getconfig/pubvendors"
    CONSENT_PROTOCOL_VERSION: str = "2"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # SDK identity stamped on new records
    SDK_PLATFORM: str = "android"
    SDK_VERSION: str = "1.0.4"

    # Storage
    STORE_BACKEND: str = "memory"  # memory | redis
    REDIS_URL: str = "redis://localhost:6379/0"
    STORE_NAMESPACE: str = "mobileads_consent"
    STORE_KEY: str = "consent_string"

    # App
    APP_ENV: str = "development"
    CORS_ORIGINS: str = "http://localhost:3000"


settings = Settings()
