import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

AIRWALLEX_PRODUCTION_URL = "https://api.airwallex.com"
AIRWALLEX_DEMO_URL = "https://api-demo.airwallex.com"
DEFAULT_RETURN_URL = "https://your-site.com/thankyou"


def _flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Runtime configuration, read once at startup."""
    processor: str = "airwallex"
    airwallex_env: str = "demo"
    airwallex_api_key: Optional[str] = None
    airwallex_client_id: Optional[str] = None
    airwallex_webhook_secret: Optional[str] = None
    stripe_secret_key: Optional[str] = None
    hpp_return_url: str = DEFAULT_RETURN_URL
    port: int = 3000
    fallback_to_simulation: bool = False
    amount_in_minor_units: bool = True
    simulation_confirm_delay: float = 0.0
    upstream_timeout: float = 15.0
    database_url: Optional[str] = None
    api_jwt_secret: Optional[str] = None
    cors_origins: tuple = ("*",)
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def airwallex_base_url(self) -> str:
        if self.airwallex_env == "production":
            return AIRWALLEX_PRODUCTION_URL
        return AIRWALLEX_DEMO_URL

    @property
    def has_credentials(self) -> bool:
        if self.processor == "stripe":
            return bool(self.stripe_secret_key)
        return bool(self.airwallex_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            processor=os.getenv("PAYMENT_PROCESSOR", "airwallex").strip().lower(),
            airwallex_env=os.getenv("AIRWALLEX_ENV", "demo").strip().lower(),
            airwallex_api_key=os.getenv("AIRWALLEX_API_KEY") or None,
            airwallex_client_id=os.getenv("AIRWALLEX_CLIENT_ID") or None,
            airwallex_webhook_secret=os.getenv("AIRWALLEX_WEBHOOK_SECRET") or None,
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            hpp_return_url=os.getenv("HPP_RETURN_URL") or DEFAULT_RETURN_URL,
            port=int(os.getenv("PORT", "3000")),
            fallback_to_simulation=_flag("FALLBACK_TO_SIMULATION", False),
            amount_in_minor_units=_flag("AMOUNT_IN_MINOR_UNITS", True),
            simulation_confirm_delay=float(os.getenv("SIMULATION_CONFIRM_DELAY", "0")),
            upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", "15")),
            database_url=os.getenv("DATABASE_URL") or None,
            api_jwt_secret=os.getenv("API_JWT_SECRET") or None,
            cors_origins=tuple(
                o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
        )
