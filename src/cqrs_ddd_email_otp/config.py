"""Authenticator configuration parsed from the host's flat string map.

The host stores authenticator settings as ``dict[str, str]``. Parsing is
lenient: a blank, non-numeric or non-positive value falls back to its default
and the fallback is logged, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

logger = logging.getLogger(__name__)

# Configuration keys recognized in the host map
CODE_LENGTH = "length"
CODE_TTL = "ttl"
RESEND_COOLDOWN = "resendCooldown"
SIMULATION_MODE = "simulationMode"
EMAIL_PROVIDER_TYPE = "emailProviderType"
ENABLE_FALLBACK = "enableFallback"
DELIVERY_TIMEOUT = "deliveryTimeout"
OTP_CONTROL_USER_ATTRIBUTE = "otpControlUserAttribute"
SKIP_OTP_ROLE = "skipOtpRole"
FORCE_OTP_ROLE = "forceOtpRole"
SKIP_OTP_FOR_HEADER_PATTERN = "skipOtpForHeaderPattern"
FORCE_OTP_FOR_HEADER_PATTERN = "forceOtpForHeaderPattern"
DEFAULT_OTP_OUTCOME = "defaultOtpOutcome"

SENDGRID_API_KEY = "sendgridApiKey"
SENDGRID_FROM_EMAIL = "sendgridFromEmail"
SENDGRID_FROM_NAME = "sendgridFromName"
AWS_SES_REGION = "awsSesRegion"
AWS_ACCESS_KEY_ID = "awsAccessKeyId"
AWS_SECRET_ACCESS_KEY = "awsSecretAccessKey"
AWS_SES_FROM_EMAIL = "awsSesFromEmail"
AWS_SES_FROM_NAME = "awsSesFromName"
MAILGUN_API_KEY = "mailgunApiKey"
MAILGUN_DOMAIN = "mailgunDomain"
MAILGUN_FROM_EMAIL = "mailgunFromEmail"
MAILGUN_FROM_NAME = "mailgunFromName"
MAILGUN_BASE_URL = "mailgunBaseUrl"

DEFAULT_LENGTH = 6
DEFAULT_TTL = 300
DEFAULT_RESEND_COOLDOWN = 30
DEFAULT_SIMULATION_MODE = False
DEFAULT_ENABLE_FALLBACK = True
DEFAULT_DELIVERY_TIMEOUT = 10.0
DEFAULT_MAILGUN_BASE_URL = "https://api.mailgun.net"


def _clean(raw: Mapping[str, str], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _positive_int(raw: Mapping[str, str], key: str, default: int) -> int:
    value = _clean(raw, key)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Unparseable value {value!r} for {key}, using default {default}")
        return default
    if parsed <= 0:
        logger.warning(f"Non-positive value {parsed} for {key}, using default {default}")
        return default
    return parsed


def _positive_float(raw: Mapping[str, str], key: str, default: float) -> float:
    value = _clean(raw, key)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Unparseable value {value!r} for {key}, using default {default}")
        return default
    if parsed <= 0:
        logger.warning(f"Non-positive value {parsed} for {key}, using default {default}")
        return default
    return parsed


def _bool(raw: Mapping[str, str], key: str, default: bool) -> bool:
    value = _clean(raw, key)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    logger.warning(f"Unparseable boolean {value!r} for {key}, using default {default}")
    return default


@dataclass(frozen=True)
class ProviderCredentials:
    """Credentials for the third-party email providers.

    Missing values are kept as None; each provider decides what it needs.
    """

    sendgrid_api_key: str | None = None
    sendgrid_from_email: str | None = None
    sendgrid_from_name: str | None = None
    aws_ses_region: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_ses_from_email: str | None = None
    aws_ses_from_name: str | None = None
    mailgun_api_key: str | None = None
    mailgun_domain: str | None = None
    mailgun_from_email: str | None = None
    mailgun_from_name: str | None = None
    mailgun_base_url: str = DEFAULT_MAILGUN_BASE_URL

    @classmethod
    def from_mapping(cls, raw: Mapping[str, str]) -> ProviderCredentials:
        return cls(
            sendgrid_api_key=_clean(raw, SENDGRID_API_KEY),
            sendgrid_from_email=_clean(raw, SENDGRID_FROM_EMAIL),
            sendgrid_from_name=_clean(raw, SENDGRID_FROM_NAME),
            aws_ses_region=_clean(raw, AWS_SES_REGION),
            aws_access_key_id=_clean(raw, AWS_ACCESS_KEY_ID),
            aws_secret_access_key=_clean(raw, AWS_SECRET_ACCESS_KEY),
            aws_ses_from_email=_clean(raw, AWS_SES_FROM_EMAIL),
            aws_ses_from_name=_clean(raw, AWS_SES_FROM_NAME),
            mailgun_api_key=_clean(raw, MAILGUN_API_KEY),
            mailgun_domain=_clean(raw, MAILGUN_DOMAIN),
            mailgun_from_email=_clean(raw, MAILGUN_FROM_EMAIL),
            mailgun_from_name=_clean(raw, MAILGUN_FROM_NAME),
            mailgun_base_url=_clean(raw, MAILGUN_BASE_URL) or DEFAULT_MAILGUN_BASE_URL,
        )

    def __repr__(self) -> str:
        # Secrets stay out of logs
        return "ProviderCredentials(...)"


@dataclass(frozen=True)
class OtpSettings:
    """Email OTP settings.

    Attributes:
        code_length: Number of digits in the code.
        ttl_seconds: Seconds a code stays valid.
        resend_cooldown_seconds: Minimum seconds between issuances.
        simulation_mode: Log codes instead of sending them (non-production).
        email_provider_type: Raw provider identifier; resolved by the dispatcher.
        enable_fallback: Retry through the built-in provider on failure.
        delivery_timeout: Seconds allowed for one provider call.
        otp_control_user_attribute: User attribute holding "skip"/"force".
        skip_otp_role: Role whose members skip OTP.
        force_otp_role: Role whose members must pass OTP.
        skip_otp_header_pattern: Regex over "<name>: <value>" that skips OTP.
        force_otp_header_pattern: Regex over "<name>: <value>" that forces OTP.
        default_otp_outcome: "skip", "force" or None.
        credentials: Third-party provider credentials.
    """

    code_length: int = DEFAULT_LENGTH
    ttl_seconds: int = DEFAULT_TTL
    resend_cooldown_seconds: int = DEFAULT_RESEND_COOLDOWN
    simulation_mode: bool = DEFAULT_SIMULATION_MODE
    email_provider_type: str | None = None
    enable_fallback: bool = DEFAULT_ENABLE_FALLBACK
    delivery_timeout: float = DEFAULT_DELIVERY_TIMEOUT
    otp_control_user_attribute: str | None = None
    skip_otp_role: str | None = None
    force_otp_role: str | None = None
    skip_otp_header_pattern: str | None = None
    force_otp_header_pattern: str | None = None
    default_otp_outcome: str | None = None
    credentials: ProviderCredentials = field(default_factory=ProviderCredentials)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, str] | None) -> OtpSettings:
        """Parse the host's flat configuration map.

        Args:
            raw: String-keyed settings; None means "all defaults".

        Returns:
            Settings with every invalid numeric value replaced by its default.
        """
        raw = raw or {}
        return cls(
            code_length=_positive_int(raw, CODE_LENGTH, DEFAULT_LENGTH),
            ttl_seconds=_positive_int(raw, CODE_TTL, DEFAULT_TTL),
            resend_cooldown_seconds=_positive_int(
                raw, RESEND_COOLDOWN, DEFAULT_RESEND_COOLDOWN
            ),
            simulation_mode=_bool(raw, SIMULATION_MODE, DEFAULT_SIMULATION_MODE),
            email_provider_type=_clean(raw, EMAIL_PROVIDER_TYPE),
            enable_fallback=_bool(raw, ENABLE_FALLBACK, DEFAULT_ENABLE_FALLBACK),
            delivery_timeout=_positive_float(
                raw, DELIVERY_TIMEOUT, DEFAULT_DELIVERY_TIMEOUT
            ),
            otp_control_user_attribute=_clean(raw, OTP_CONTROL_USER_ATTRIBUTE),
            skip_otp_role=_clean(raw, SKIP_OTP_ROLE),
            force_otp_role=_clean(raw, FORCE_OTP_ROLE),
            # Patterns keep surrounding whitespace; it may be significant
            skip_otp_header_pattern=raw.get(SKIP_OTP_FOR_HEADER_PATTERN) or None,
            force_otp_header_pattern=raw.get(FORCE_OTP_FOR_HEADER_PATTERN) or None,
            default_otp_outcome=_clean(raw, DEFAULT_OTP_OUTCOME),
            credentials=ProviderCredentials.from_mapping(raw),
        )

    def validated(self) -> OtpSettings:
        """Return a copy with non-positive numeric fields reset to defaults.

        Settings built directly (not via ``from_mapping``) go through this
        before use so the same fallback rules apply.
        """
        length, ttl, cooldown = self.code_length, self.ttl_seconds, self.resend_cooldown_seconds
        if length <= 0:
            logger.warning(f"Non-positive code length {length}, using {DEFAULT_LENGTH}")
            length = DEFAULT_LENGTH
        if ttl <= 0:
            logger.warning(f"Non-positive ttl {ttl}, using {DEFAULT_TTL}")
            ttl = DEFAULT_TTL
        if cooldown <= 0:
            logger.warning(
                f"Non-positive resend cooldown {cooldown}, using {DEFAULT_RESEND_COOLDOWN}"
            )
            cooldown = DEFAULT_RESEND_COOLDOWN
        return replace(
            self,
            code_length=length,
            ttl_seconds=ttl,
            resend_cooldown_seconds=cooldown,
        )


__all__: list[str] = ["OtpSettings", "ProviderCredentials"]
