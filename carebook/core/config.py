from pydantic_settings import BaseSettings
from typing import Optional, List
import os

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Carebook"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    TESTING: bool = os.getenv("TESTING", "0").lower() in ("1", "true", "t", "yes", "y")

    # Storage - "memory" keeps everything in process, "database" uses SQLAlchemy
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite:///./carebook.db"

    # Security
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30

    # Redis (for rate limiting)
    REDIS_URL: str = "redis://localhost:6379"
    RATE_LIMIT_ENABLED: bool = False
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Payments - "simulated" or "stripe"
    PAYMENT_GATEWAY: str = "simulated"
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_API_BASE: str = "https://api.stripe.com"
    PAYMENT_CURRENCY: str = "usd"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000", "http://testserver"]

    @property
    def uses_database(self) -> bool:
        """Whether records are kept in the SQL database instead of memory."""
        return self.STORAGE_BACKEND.lower() == "database"

    class Config:
        env_file = ".env"
        case_sensitive = True

# Create settings instance
settings = Settings()
