import logging
import os
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 20


class EmailDeliveryError(RuntimeError):
    pass


def _flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SMTPConfig:
    name: str
    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    use_tls: bool
    use_ssl: bool
    sender: str

    @classmethod
    def from_env(cls, prefix: str) -> Optional["SMTPConfig"]:
        """Read ``<prefix>_HOST/_PORT/_FROM`` (required) plus optional credentials and flags."""
        host = os.environ.get(f"{prefix}_HOST")
        port = os.environ.get(f"{prefix}_PORT")
        sender = os.environ.get(f"{prefix}_FROM")
        if not (host and port and sender):
            return None
        if not port.strip().isdigit():
            raise EmailDeliveryError(f"Invalid {prefix}_PORT: {port}")
        return cls(
            name=prefix,
            host=host,
            port=int(port),
            user=os.environ.get(f"{prefix}_USER"),
            password=os.environ.get(f"{prefix}_PASS"),
            use_tls=_flag(f"{prefix}_TLS", True),
            use_ssl=_flag(f"{prefix}_SSL", False),
            sender=sender,
        )

    def connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT_SECONDS)
            if self.use_tls:
                server.starttls(context=context)
        if self.user and self.password:
            try:
                server.login(self.user, self.password)
            except smtplib.SMTPException:
                server.close()
                raise
        return server


def compose(sender: str, to_email: str, subject: str, html: str, text: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(text)
    message.add_alternative(html, subtype="html")
    return message


def deliver(config: SMTPConfig, to_email: str, subject: str, html: str, text: str) -> None:
    with config.connect() as server:
        server.send_message(compose(config.sender, to_email, subject, html, text))


def _relays(*prefixes: str) -> List[SMTPConfig]:
    configs = [SMTPConfig.from_env(prefix) for prefix in prefixes]
    return [config for config in configs if config]


def _deliver_first(relays: List[SMTPConfig], to_email: str, subject: str, html: str, text: str) -> None:
    if not relays:
        raise EmailDeliveryError("No SMTP relay configured (set SMTP_PRIMARY_HOST/PORT/FROM)")
    last_error: Optional[Exception] = None
    for config in relays:
        try:
            deliver(config, to_email, subject, html, text)
            if config is not relays[0]:
                logger.info("Email to %s sent via %s", to_email, config.name)
            return
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("%s relay failed for %s: %s", config.name, to_email, exc)
            last_error = exc
    raise EmailDeliveryError(f"All SMTP relays failed: {last_error}")


def send_email(to_email: str, subject: str, html: str, text: str) -> None:
    """Transactional mail: primary relay, then the secondary one."""
    _deliver_first(_relays("SMTP_PRIMARY", "SMTP_SECONDARY"), to_email, subject, html, text)
    logger.info("Email sent to %s", to_email)


def send_bulk_email(to_email: str, subject: str, html: str, text: str) -> None:
    # SMTP_BULK first when configured.
    _deliver_first(_relays("SMTP_BULK", "SMTP_PRIMARY", "SMTP_SECONDARY"), to_email, subject, html, text)
