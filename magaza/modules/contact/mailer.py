from magaza.config import settings
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from typing import Optional
import re
import smtplib
import logging

logger = logging.getLogger(__name__)


class MailerNotConfigured(RuntimeError):
    pass


def header_value(value: Optional[str]) -> str:
    """Header text on one line; CR/LF runs become a single space"""
    return re.sub(r"[\r\n]+", " ", value or "").strip()


def send_email(
    to_email: str,
    subject: str,
    text: str,
    html: Optional[str] = None,
    from_name: Optional[str] = None,
    reply_to: Optional[str] = None,
) -> str:
    """Send a multipart e-mail through the configured SMTP server and return its Message-ID.

    Port 465 (email_secure) uses implicit TLS, anything else upgrades with STARTTLS.
    SMTP exceptions propagate to the caller.
    """
    if not settings.smtp_configured:
        raise MailerNotConfigured("SMTP ayarlı değil (EMAIL_HOST/EMAIL_USER/EMAIL_PASSWORD).")

    from_email = settings.email_from or settings.email_user
    msg = EmailMessage()
    from_name = header_value(from_name)
    msg["Subject"] = header_value(subject)
    msg["From"] = formataddr((from_name, from_email)) if from_name else from_email
    msg["To"] = header_value(to_email)
    if reply_to:
        msg["Reply-To"] = header_value(reply_to)
    message_id = make_msgid(domain=from_email.split("@")[-1])
    msg["Message-ID"] = message_id
    msg.set_content(text or "")
    if html:
        msg.add_alternative(html, subtype="html")

    smtp = None
    try:
        if settings.email_secure:
            smtp = smtplib.SMTP_SSL(settings.email_host, settings.email_port, timeout=settings.email_timeout)
        else:
            smtp = smtplib.SMTP(settings.email_host, settings.email_port, timeout=settings.email_timeout)
            smtp.ehlo()
            smtp.starttls()
        smtp.ehlo()
        smtp.login(settings.email_user, settings.email_password)
        smtp.send_message(msg)
    finally:
        if smtp is not None:
            try:
                smtp.quit()
            except (smtplib.SMTPException, OSError) as e:
                logger.debug(f"SMTP quit failed: {e}")

    logger.info(f"E-mail sent to {to_email}: {message_id}")
    return message_id
