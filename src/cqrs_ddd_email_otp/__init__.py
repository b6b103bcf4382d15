"""Email one-time-passcode second factor.

Decides whether an attempt needs a code, issues and delivers it with
provider fallback, and verifies what the user types back.

Example:
    ```python
    from cqrs_ddd_email_otp import (
        AuthenticationContext,
        EmailOtpFlow,
        OtpSettings,
        SmtpEmailProvider,
    )

    settings = OtpSettings.from_mapping(authenticator_config)
    flow = EmailOtpFlow.from_settings(
        settings,
        builtin=SmtpEmailProvider(host="mail.internal", from_email="noreply@example.com"),
    )
    state = await flow.authenticate(context)
    ```
"""

from __future__ import annotations

from .challenge import ChallengeNotes, OtpChallenge
from .clock import FrozenClock, SecretsCodeGenerator, SystemClock
from .config import OtpSettings, ProviderCredentials
from .context import AuthenticatedUser, AuthenticationContext
from .delivery import (
    CodeEmailRenderer,
    CodeEmailTemplate,
    DeliveryAttempt,
    DeliveryDispatcher,
    DeliveryStatus,
    EmailMessage,
    EmailProviderFactory,
    EmailProviderType,
    InMemoryEmailProvider,
    MailgunEmailProvider,
    SendGridEmailProvider,
    SesEmailProvider,
    SmtpEmailProvider,
)
from .exceptions import (
    AllProvidersFailedError,
    ConfigurationError,
    CooldownActiveError,
    DeliveryError,
    DeliveryFailedError,
    EmailOtpError,
    EmailSendError,
    RecipientMissingError,
)
from .flow import ChallengeState, EmailOtpFlow, FlowResult, FlowState
from .manager import IssueResult, OtpChallengeManager, VerifyResult
from .policy import (
    BypassPolicyEngine,
    DefaultOutcomeVoter,
    HeaderPatternVoter,
    PolicyVerdict,
    RoleVoter,
    UserAttributeVoter,
)
from .ports import IClock, ICodeGenerator, IEmailProvider, IPolicyVoter, ISessionStore
from .session import InMemorySessionStore

__version__ = "0.1.0"

__all__ = [
    # Flow
    "EmailOtpFlow",
    "FlowState",
    "FlowResult",
    "ChallengeState",
    # Challenge
    "OtpChallengeManager",
    "VerifyResult",
    "IssueResult",
    "OtpChallenge",
    "ChallengeNotes",
    # Policy
    "BypassPolicyEngine",
    "PolicyVerdict",
    "UserAttributeVoter",
    "RoleVoter",
    "HeaderPatternVoter",
    "DefaultOutcomeVoter",
    # Delivery
    "DeliveryDispatcher",
    "EmailProviderFactory",
    "EmailProviderType",
    "EmailMessage",
    "DeliveryAttempt",
    "DeliveryStatus",
    "CodeEmailRenderer",
    "CodeEmailTemplate",
    "SmtpEmailProvider",
    "SendGridEmailProvider",
    "SesEmailProvider",
    "MailgunEmailProvider",
    "InMemoryEmailProvider",
    # Configuration / context
    "OtpSettings",
    "ProviderCredentials",
    "AuthenticatedUser",
    "AuthenticationContext",
    # Ports and adapters
    "ISessionStore",
    "IClock",
    "ICodeGenerator",
    "IEmailProvider",
    "IPolicyVoter",
    "InMemorySessionStore",
    "SystemClock",
    "FrozenClock",
    "SecretsCodeGenerator",
    # Exceptions
    "EmailOtpError",
    "ConfigurationError",
    "RecipientMissingError",
    "DeliveryError",
    "EmailSendError",
    "DeliveryFailedError",
    "AllProvidersFailedError",
    "CooldownActiveError",
]
