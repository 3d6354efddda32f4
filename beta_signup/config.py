from pydantic_settings import BaseSettings

from beta_signup.utils import constants


class Settings(BaseSettings):
    # Database
    database_url: str | None = None
    db_name: str = "beta_signup_db"
    db_user: str = "postgres"
    db_password: str = ""
    db_host: str = "localhost"
    db_port: str = "5432"

    # Environment
    env: str = "local"
    app_url_base: str = "http://localhost:8000"

    # Firebase
    firebase_credentials_file: str | None = None

    # Google OAuth client used to refresh owner access tokens
    google_client_id: str | None = None
    google_client_secret: str | None = None

    # Fernet key protecting stored owner credentials
    token_encryption_key: str | None = None

    # Signup workflow
    consumer_group_suffix: str = constants.CONSUMER_GROUP_SUFFIX
    group_api_timeout_seconds: float = constants.GROUP_API_TIMEOUT_SECONDS
    allocation_max_attempts: int = constants.ALLOCATION_MAX_ATTEMPTS
    max_promotional_codes_per_request: int = constants.MAX_PROMOTIONAL_CODES_PER_REQUEST

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def async_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        port = self.db_port if self.db_port and self.db_port != "None" else "5432"
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{port}/{self.db_name}"
        )


settings = Settings()
