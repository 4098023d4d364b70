"""
Configuration for the SMS reporting service.

Every setting can be given as an environment variable (or in a .env file);
the defaults below are enough to run locally against the bundled specs.
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# =============================================================================
# DEFAULTS
# =============================================================================

SMS_DB_PATH = "data/sms.db"
SPEC_DIR = "specs"
HELP_PHONE_NUMBER = "XXXXX"
EVIDENCE_BASE_URL = "https://sms.thewhistle.org"

# "sender": tokens kept server-side, keyed by the From number
# "cookie": tokens round-tripped as HTTP cookies by the provider
STATE_BACKEND = "sender"
STATE_BACKENDS = ("sender", "cookie")

ALIAS_MAX_ATTEMPTS = 100
EVIDENCE_TIMEOUT_DAYS = 7

OUTBOUND_DELETE_DELAY = 1.0
OUTBOUND_DELETE_MAX_ATTEMPTS = 0  # 0 = keep trying

LOG_LEVEL = "INFO"


@dataclass
class Settings:
    sms_db_path: str = SMS_DB_PATH
    spec_dir: str = SPEC_DIR
    help_phone_number: str = HELP_PHONE_NUMBER
    evidence_base_url: str = EVIDENCE_BASE_URL
    state_backend: str = STATE_BACKEND
    alias_max_attempts: int = ALIAS_MAX_ATTEMPTS
    evidence_timeout_days: int = EVIDENCE_TIMEOUT_DAYS
    outbound_delete_delay: float = OUTBOUND_DELETE_DELAY
    outbound_delete_max_attempts: int = OUTBOUND_DELETE_MAX_ATTEMPTS
    twilio_account_sid: str = None
    twilio_auth_token: str = None
    log_level: str = LOG_LEVEL


def get_settings() -> Settings:
    """Load configuration."""
    load_dotenv()

    state_backend = os.getenv("STATE_BACKEND", STATE_BACKEND).lower()
    if state_backend not in STATE_BACKENDS:
        raise ValueError(f"STATE_BACKEND must be one of {', '.join(STATE_BACKENDS)}")

    return Settings(
        sms_db_path=os.getenv("SMS_DB_PATH", SMS_DB_PATH),
        spec_dir=os.getenv("SPEC_DIR", SPEC_DIR),
        help_phone_number=os.getenv("HELP_PHONE_NUMBER", HELP_PHONE_NUMBER),
        evidence_base_url=os.getenv("EVIDENCE_BASE_URL", EVIDENCE_BASE_URL),
        state_backend=state_backend,
        alias_max_attempts=int(os.getenv("ALIAS_MAX_ATTEMPTS", ALIAS_MAX_ATTEMPTS)),
        evidence_timeout_days=int(os.getenv("EVIDENCE_TIMEOUT_DAYS", EVIDENCE_TIMEOUT_DAYS)),
        outbound_delete_delay=float(os.getenv("OUTBOUND_DELETE_DELAY", OUTBOUND_DELETE_DELAY)),
        outbound_delete_max_attempts=int(
            os.getenv("OUTBOUND_DELETE_MAX_ATTEMPTS", OUTBOUND_DELETE_MAX_ATTEMPTS)
        ),
        twilio_account_sid=os.getenv("TWILIO_ACCOUNT_SID"),
        twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
        log_level=os.getenv("LOG_LEVEL", LOG_LEVEL),
    )
