from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./opsdesk.db"
    AUTO_CREATE_TABLES: bool = True

    # Auth
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    PASSWORD_RESET_EXPIRE_MINUTES: int = 30

    # Inventory
    DEFAULT_MIN_QUANTITY: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"

    # Browser origins allowed to call the API
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]
    FRONTEND_URL: str = "http://localhost:5173"

    # Email / SMTP (empty host = log the message instead of sending)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    MAIL_FROM: str = "no-reply@opsdesk.local"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow"
    )


settings = Settings()
