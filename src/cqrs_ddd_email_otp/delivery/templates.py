"""Jinja2 rendering of the access code email."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from jinja2 import Environment, StrictUndefined

from .message import EmailMessage

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_TEMPLATE = "{{ realm_name or 'Your account' }}: access code"

DEFAULT_TEXT_TEMPLATE = """\
{% if username %}Hello {{ username }},

{% endif %}Your verification code is: {{ code }}

This code will expire in {{ ttl_minutes }} minute{{ 's' if ttl_minutes != 1 else '' }}.

If you did not request this code, please ignore this email.
"""

DEFAULT_HTML_TEMPLATE = """\
<html>
<body>
{% if username %}<p>Hello {{ username }},</p>{% endif %}
<p>Your verification code is: <strong>{{ code }}</strong></p>
<p>This code will expire in {{ ttl_minutes }} minute{{ 's' if ttl_minutes != 1 else '' }}.</p>
<p>If you did not request this code, please ignore this email.</p>
</body>
</html>
"""


@dataclass(frozen=True)
class CodeEmailTemplate:
    """Subject and body templates for the code email."""

    subject_template: str = DEFAULT_SUBJECT_TEMPLATE
    text_template: str = DEFAULT_TEXT_TEMPLATE
    html_template: str | None = DEFAULT_HTML_TEMPLATE


class CodeEmailRenderer:
    """
    Renders the access code email using the Jinja2 engine.

    Template variables: ``username``, ``code``, ``ttl`` (seconds),
    ``ttl_minutes`` (rounded up) and ``realm_name``.
    """

    def __init__(self, template: CodeEmailTemplate | None = None) -> None:
        self.template = template or CodeEmailTemplate()
        self._env = Environment(undefined=StrictUndefined, autoescape=False)
        self._html_env = Environment(undefined=StrictUndefined, autoescape=True)

    def render(
        self,
        *,
        to: str,
        code: str,
        ttl_seconds: int,
        username: str | None = None,
        realm_name: str | None = None,
    ) -> EmailMessage:
        context: dict[str, Any] = {
            "username": username,
            "code": code,
            "ttl": ttl_seconds,
            "ttl_minutes": max(1, -(-ttl_seconds // 60)),
            "realm_name": realm_name,
        }
        try:
            subject = self._env.from_string(self.template.subject_template).render(**context)
            text_body = self._env.from_string(self.template.text_template).render(**context)
            html_body = None
            if self.template.html_template:
                html_body = self._html_env.from_string(self.template.html_template).render(
                    **context
                )
        except Exception as e:
            logger.error(f"Code email rendering failed: {e}")
            raise

        return EmailMessage(
            to=to,
            subject=subject.strip(),
            text_body=text_body,
            html_body=html_body,
            template_data={"username": username, "code": code, "ttl": ttl_seconds},
        )


__all__: list[str] = ["CodeEmailRenderer", "CodeEmailTemplate"]
