"""Email handler: templated to/subject/body sent over SMTP with aiosmtplib."""

import logging
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Any, Optional

import aiosmtplib
from pydantic import ValidationError

from autoflow.exceptions import HandlerError
from autoflow.types import ActionConfig, EmailConfig, ExecutionContext, MissingPathPolicy
from autoflow.workflows.templates import resolve_template

logger = logging.getLogger(__name__)


class EmailHandler:
    """Send one plain-text email per visit. Returns ``{success, id}``.

    Failures raise HandlerError: a missing SMTP host, a missing recipient
    after template resolution, or any SMTP error.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        sender_name: str = "AutoDesk",
        timeout: float = 30.0,
        missing: MissingPathPolicy = MissingPathPolicy.EMPTY,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout
        self.missing = missing

    def build_message(self, cfg: EmailConfig, context: ExecutionContext) -> EmailMessage:
        to = resolve_template(cfg.to, context, self.missing).strip()
        if not to:
            raise HandlerError("Email recipient resolved to an empty address", action_type="email")

        msg = EmailMessage()
        msg["From"] = formataddr((self.sender_name, self.sender or ""))
        msg["To"] = to
        msg["Subject"] = resolve_template(cfg.subject, context, self.missing)
        msg["Message-ID"] = make_msgid()
        msg.set_content(resolve_template(cfg.body, context, self.missing))
        return msg

    async def __call__(self, action: ActionConfig, context: ExecutionContext) -> dict[str, Any]:
        try:
            cfg = EmailConfig.model_validate(action.config)
        except ValidationError as exc:
            raise HandlerError(f"Invalid email config: {exc}", action_type="email") from exc

        if not self.host:
            raise HandlerError("SMTP is not configured (set AUTOFLOW_SMTP_HOST)", action_type="email")

        msg = self.build_message(cfg, context)
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.port == 465,
                start_tls=self.port == 587,
                timeout=self.timeout,
            )
        except aiosmtplib.SMTPException as exc:
            raise HandlerError(f"Email send failed: {exc}", action_type="email") from exc

        logger.info(f"[Email] sent to={msg['To']} id={msg['Message-ID']}")
        return {"success": True, "id": msg["Message-ID"]}
