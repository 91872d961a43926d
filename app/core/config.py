import os
import logging
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from dotenv import load_dotenv

load_dotenv()

class PayrollSettings(BaseModel):
    min_year: int = Field(default=int(os.getenv("PAYROLL_MIN_YEAR", "2000")))
    max_year: int = Field(default=int(os.getenv("PAYROLL_MAX_YEAR", "2100")))
    # "zero" creates a zero-salary record, "skip" reports the staff member as excluded
    missing_salary_policy: Literal["zero", "skip"] = Field(
        default=os.getenv("PAYROLL_MISSING_SALARY_POLICY", "zero"),
        validate_default=True
    )
    apply_component_defaults: bool = Field(
        default=os.getenv("PAYROLL_APPLY_COMPONENT_DEFAULTS", "false").lower() == "true"
    )
    default_payment_method: str = Field(default=os.getenv("PAYROLL_DEFAULT_PAYMENT_METHOD", "bank_transfer"))

class Config(BaseModel):
    app_name: str = "School Payroll Service"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./payroll.db")

    # Auth
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )

    # Rate limiting
    enable_rate_limiting: bool = os.getenv("ENABLE_RATE_LIMITING", "true").lower() == "true"
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    bulk_rate_limit: str = os.getenv("BULK_RATE_LIMIT", "10/minute")

    payroll: PayrollSettings = PayrollSettings()
    log_level: Optional[str] = os.getenv("LOG_LEVEL")

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
elif settings.environment == "development" and "dev-only" in settings.secret_key:
    _logger.warning("Using insecure default SECRET_KEY; only acceptable in development.")
