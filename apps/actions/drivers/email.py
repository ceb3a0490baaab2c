"""Email driver for merchant response drafts."""

import logging
import smtplib
import uuid
from email.mime.text import MIMEText
from typing import Any

from apps.actions.drivers.base import ActionRequest, ActionResult, BaseActionDriver

logger = logging.getLogger(__name__)


class EmailActionDriver(BaseActionDriver):
    """
    Sends the rendered action by SMTP.

    Configuration:
    {
        "smtp_host": "smtp.example.com",
        "smtp_port": 587,
        "use_tls": true,
        "username": "...",
        "password": "...",
        "from_address": "support@example.com",
        "to_addresses": ["merchant-success@example.com"],
        "timeout": 30
    }

    Drafts go to the support mailbox, not to merchants directly.
    """

    name = "email"
    supported_kinds = ("draft_response", "create_ticket", "request_doc_update", "create_incident")

    def validate_config(self, config: dict[str, Any]) -> bool:
        return all(key in config for key in ("smtp_host", "from_address"))

    def _subject(self, request: ActionRequest) -> str:
        prefix = "[CRITICAL] " if request.is_urgent else ""
        if request.action_kind == "draft_response":
            prefix += "[DRAFT] "
        return f"{prefix}{request.title}"

    def _build_email(self, request: ActionRequest, config: dict[str, Any]) -> MIMEText:
        email = MIMEText(request.body, "plain", "utf-8")
        email["Subject"] = self._subject(request)
        email["From"] = config["from_address"]
        email["To"] = ", ".join(self._recipients(config))
        email["X-Priority"] = "1" if request.is_urgent else "3"
        return email

    def _recipients(self, config: dict[str, Any]) -> list[str]:
        return config.get("to_addresses") or [config["from_address"]]

    def _execute(self, request: ActionRequest, config: dict[str, Any]) -> ActionResult:
        smtp_host = config["smtp_host"]
        smtp_port = config.get("smtp_port", 587)
        use_tls = config.get("use_tls", True)
        use_ssl = config.get("use_ssl", False)
        timeout = config.get("timeout", 30)

        email = self._build_email(request, config)
        message_id = f"<{uuid.uuid4()}@{smtp_host}>"
        email["Message-ID"] = message_id

        try:
            server: smtplib.SMTP | smtplib.SMTP_SSL
            if use_ssl:
                server = smtplib.SMTP_SSL(smtp_host, smtp_port, timeout=timeout)
            else:
                server = smtplib.SMTP(smtp_host, smtp_port, timeout=timeout)
            try:
                if use_tls and not use_ssl:
                    server.starttls()
                if config.get("username") and config.get("password"):
                    server.login(config["username"], config["password"])
                server.sendmail(config["from_address"], self._recipients(config), email.as_string())
            finally:
                try:
                    server.quit()
                except smtplib.SMTPException:
                    pass
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email delivery failed for decision {request.decision_id}: {e}")
            return ActionResult.failure(self.name, f"Failed to send email: {e}")

        logger.info(f"Email sent for decision {request.decision_id}: {message_id}")
        return ActionResult(
            success=True,
            tool=self.name,
            reference_id=message_id,
            metadata={"to": self._recipients(config), "subject": email["Subject"]},
        )
