"""Resolves a configured provider type to a concrete provider instance."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError
from .message import EmailProviderType
from .providers.mailgun import MailgunEmailProvider
from .providers.sendgrid import SendGridEmailProvider
from .providers.ses import SesEmailProvider

if TYPE_CHECKING:
    from ..config import ProviderCredentials
    from ..ports import IEmailProvider

logger = logging.getLogger(__name__)


def _require(value: str | None, message: str, provider: EmailProviderType) -> str:
    if not value:
        raise ConfigurationError(message, provider=provider.display_name)
    return value


class EmailProviderFactory:
    """Builds providers once, at configuration load time.

    Example:
        ```python
        provider = EmailProviderFactory.create(
            EmailProviderType.SENDGRID,
            settings.credentials,
            builtin=smtp_provider,
        )
        ```
    """

    @staticmethod
    def create(
        provider_type: EmailProviderType,
        credentials: ProviderCredentials,
        *,
        builtin: IEmailProvider,
        timeout: float = 10.0,
    ) -> IEmailProvider:
        """Create the provider for ``provider_type``.

        Raises:
            ConfigurationError: A credential the provider requires is missing.
        """
        logger.debug(f"Creating email provider: {provider_type.display_name}")

        if provider_type is EmailProviderType.SENDGRID:
            api_key = _require(
                credentials.sendgrid_api_key,
                "SendGrid API key is required but not configured",
                provider_type,
            )
            from_email = _require(
                credentials.sendgrid_from_email,
                "SendGrid from email is required but not configured",
                provider_type,
            )
            logger.info(f"Creating SendGrid email provider with from address: {from_email}")
            return SendGridEmailProvider(
                api_key=api_key,
                from_email=from_email,
                from_name=credentials.sendgrid_from_name,
                timeout=timeout,
            )

        if provider_type is EmailProviderType.AWS_SES:
            region = _require(
                credentials.aws_ses_region,
                "AWS SES region is required but not configured",
                provider_type,
            )
            access_key_id = _require(
                credentials.aws_access_key_id,
                "AWS Access Key ID is required but not configured",
                provider_type,
            )
            secret_access_key = _require(
                credentials.aws_secret_access_key,
                "AWS Secret Access Key is required but not configured",
                provider_type,
            )
            from_email = _require(
                credentials.aws_ses_from_email,
                "AWS SES from email is required but not configured",
                provider_type,
            )
            logger.info(
                f"Creating AWS SES email provider in region {region} "
                f"with from address: {from_email}"
            )
            return SesEmailProvider(
                region_name=region,
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                from_email=from_email,
                from_name=credentials.aws_ses_from_name,
                timeout=timeout,
            )

        if provider_type is EmailProviderType.MAILGUN:
            api_key = _require(
                credentials.mailgun_api_key,
                "Mailgun API key is required but not configured",
                provider_type,
            )
            domain = _require(
                credentials.mailgun_domain,
                "Mailgun domain is required but not configured",
                provider_type,
            )
            from_email = _require(
                credentials.mailgun_from_email,
                "Mailgun from email is required but not configured",
                provider_type,
            )
            logger.info(f"Creating Mailgun email provider for domain {domain}")
            return MailgunEmailProvider(
                api_key=api_key,
                domain=domain,
                from_email=from_email,
                from_name=credentials.mailgun_from_name,
                base_url=credentials.mailgun_base_url,
                timeout=timeout,
            )

        return builtin


__all__: list[str] = ["EmailProviderFactory"]
