from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import Optional, List


def _parse_allowed_origins(v: str) -> List[str]:
    """Parse comma-separated origins string; strip whitespace; keep non-empty."""
    if not v or not v.strip():
        return []
    return [o.strip() for o in v.split(",") if o.strip()]


_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./orgaccess.db"

    # CORS: comma-separated extra origins for production deployments
    ALLOWED_ORIGINS_EXTRA: str = ""

    def get_allowed_origins(self) -> List[str]:
        """Return CORS allowed origins: default localhost + ALLOWED_ORIGINS_EXTRA."""
        return _DEFAULT_CORS_ORIGINS + _parse_allowed_origins(self.ALLOWED_ORIGINS_EXTRA)

    # Frontend (invitation acceptance page lives here)
    FRONTEND_URL: str = "http://localhost:5173"

    # Transactional email (Brevo)
    BREVO_API_KEY: Optional[str] = None
    BREVO_API_URL: str = "https://api.brevo.com/v3/smtp/email"
    EMAIL_SENDER_ADDRESS: str = "noreply@orgaccess.local"
    EMAIL_SENDER_NAME: str = "OrgAccess"
    EMAIL_TIMEOUT_SECONDS: float = 15.0

    # Invitations
    INVITATION_EXPIRES_DAYS: int = 7

    # Billing defaults for new organizations
    DEFAULT_MAX_SEATS: int = 50
    DEFAULT_PRICE_PER_SEAT: Decimal = Decimal("30.00")
    ANNUAL_DISCOUNT_FACTOR: Decimal = Decimal("0.85")  # 15% off when billed yearly

    # Audit
    AUDIT_MAX_PAGE_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        # Environment variables win over the .env file


settings = Settings()
