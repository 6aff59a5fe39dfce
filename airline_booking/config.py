from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./airline_booking.db"
    DATABASE_ECHO: bool = False
    STORAGE_BACKEND: Literal["memory", "sql"] = "memory"  # where flights, bookings and holidays live

    # Booking lifecycle
    BOOKING_EXPIRATION_MINUTES: int = 15
    MAX_PASSENGERS_PER_BOOKING: int = 9
    MIN_HOURS_BEFORE_DEPARTURE: int = 2
    EXPIRATION_SWEEP_INTERVAL_SECONDS: int = 60
    EXPIRATION_SWEEP_ENABLED: bool = True

    # Country whose public holidays are flagged in the price calendar
    HOLIDAY_COUNTRY: str = "UZ"

    # Calendar day used for day-of-week pricing and the price calendar
    LOCAL_TIMEZONE: str = "UTC"

    # Application
    PROJECT_NAME: str = "Airline Booking Service"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

settings = Settings()
