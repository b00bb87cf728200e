from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def choose_env_file() -> str:
    return ".env.local" if Path(".env.local").exists() else ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=choose_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # tolerate unrelated env vars
    )

    # CouchDB
    COUCHDB_HOST: str = "localhost"
    COUCHDB_PORT: int = 5984
    COUCHDB_USERNAME: str = "admin"
    COUCHDB_PASSWORD: str = ""
    POSTS_DATABASE: str = "posts"
    USERS_DATABASE: str = "users"
    MEDIA_DATABASE: str = "media"

    # Blog
    SITE_OWNER: str = "Jorge"
    PLACEHOLDER_IMAGE: str = "/static/images/placeholder.svg"
    MEDIA_URL_PREFIX: str = "/images"
    MAX_POST_IMAGES: int = 5
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    # Post images are cropped square to this many pixels a side
    POST_IMAGE_SIZE: int = 800

    # Logging
    LOG_LEVEL: str = "INFO"

    # Session tokens
    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60
    SESSION_COOKIE_NAME: str = "session"

    # EmailJS
    EMAILJS_PUBLIC_KEY: str = ""
    EMAILJS_PRIVATE_KEY: str = ""
    EMAILJS_SERVICE_ID: str = ""
    EMAILJS_TEMPLATE_ID: str = ""
    EMAILJS_API_URL: str = "https://api.emailjs.com/api/v1.0/email/send"

    @property
    def couchdb_url(self) -> str:
        return f"http://{self.COUCHDB_USERNAME}:{self.COUCHDB_PASSWORD}@{self.COUCHDB_HOST}:{self.COUCHDB_PORT}"


# Global settings instance (evaluated at import, but reads env on construction)
settings = Settings()
