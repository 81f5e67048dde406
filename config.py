from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, overridable through HOTEL_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Service settings
    app_name: str = "Hotel Reservation API"
    app_version: str = "1.0.0"

    # Auth settings
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Booking rules
    default_currency: str = "USD"
    max_guests_per_reservation: int = 10

    seed_demo_data: bool = True
    log_level: str = "INFO"

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]


settings = Settings()
