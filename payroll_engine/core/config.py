import os
import logging
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Dict
from dotenv import load_dotenv

load_dotenv()


def _parse_bracket_rates(raw: str) -> Dict[str, Decimal]:
    """Parse `bracket:rate` pairs, e.g. "exempt:0,low:0.05"."""
    rates: Dict[str, Decimal] = {}
    for pair in raw.split(","):
        if not pair.strip():
            continue
        name, _, rate = pair.partition(":")
        rates[name.strip()] = Decimal(rate.strip() or "0")
    return rates


class PayrollSettings(BaseModel):
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "200"))
    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "$")
    company_name: str = os.getenv("COMPANY_NAME", "Payroll Department")
    tax_bracket_rates: Dict[str, Decimal] = Field(
        default_factory=lambda: _parse_bracket_rates(
            os.getenv("TAX_BRACKET_RATES", "exempt:0,low:0.05,standard:0.10,high:0.20")
        )
    )


class Config(BaseModel):
    app_name: str = "Payroll Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = os.getenv("API_PREFIX", "/api")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./payroll.db")
    allow_sqlite: bool = os.getenv("ALLOW_SQLITE", "false").lower() == "true"

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"
    user_id_header: str = "X-User-Id"

    payroll: PayrollSettings = PayrollSettings()


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if settings.database_url.startswith("sqlite") and not settings.allow_sqlite:
        raise RuntimeError(
            "FATAL: DATABASE_URL points at SQLite in a non-development environment. "
            "Configure a server database or set ALLOW_SQLITE=true."
        )
elif settings.database_url.startswith("sqlite"):
    _logger.info("Using SQLite database at %s", settings.database_url)
