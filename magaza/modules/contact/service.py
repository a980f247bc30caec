from magaza.config import settings
from magaza.core.validators import validate_email
from magaza.modules.contact import mailer, sms
from magaza.modules.contact.schemas import (
    ContactRequest, SendEmailRequest, SendSmsRequest, MailResponse, SmsResponse,
)
from fastapi import HTTPException
from datetime import datetime
from zoneinfo import ZoneInfo
import html
import smtplib
import logging

logger = logging.getLogger(__name__)

TURKEY_TZ = ZoneInfo("Europe/Istanbul")
SMTP_GENERIC_ERROR = "E-posta gönderilirken bir hata oluştu. Lütfen daha sonra tekrar deneyiniz."


def smtp_error_message(error: Exception) -> str:
    """User-facing Turkish text for an SMTP failure"""
    if isinstance(error, smtplib.SMTPAuthenticationError):
        return "E-posta sunucusu kimlik doğrulama hatası. Kullanıcı adı veya şifre hatalı olabilir."
    if isinstance(error, (smtplib.SMTPRecipientsRefused, smtplib.SMTPSenderRefused)):
        return "Geçersiz e-posta adresi. Lütfen e-posta adresinizi kontrol ediniz."
    if isinstance(error, (smtplib.SMTPConnectError, smtplib.SMTPServerDisconnected, TimeoutError, ConnectionError)):
        return "E-posta sunucusuna bağlanılamadı. Lütfen daha sonra tekrar deneyiniz."
    if str(error):
        return f"{SMTP_GENERIC_ERROR} Hata detayı: {error}"
    return SMTP_GENERIC_ERROR


def format_tr_datetime(moment: datetime) -> str:
    return moment.astimezone(TURKEY_TZ).strftime("%d.%m.%Y %H:%M:%S")


def render_contact_html(name: str, email: str, subject: str, message: str, sent_at: str) -> str:
    name, email, subject = html.escape(name), html.escape(email), html.escape(subject)
    body = html.escape(message).replace("\n", "<br>")
    return f"""
<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #4f46e5; border-bottom: 2px solid #e5e7eb; padding-bottom: 10px;">Yeni İletişim Formu Gönderimi</h2>
  <div style="background: #f9fafb; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <p><strong>Ad Soyad:</strong> {name}</p>
    <p><strong>E-posta:</strong> <a href="mailto:{email}" style="color: #4f46e5; text-decoration: none;">{email}</a></p>
    <p><strong>Konu:</strong> {subject}</p>
    <div style="margin-top: 20px; padding-top: 15px; border-top: 1px solid #e5e7eb;">
      <strong>Mesaj:</strong>
      <p style="margin-top: 10px; line-height: 1.6;">{body}</p>
    </div>
  </div>
  <p style="font-size: 12px; color: #6b7280; margin-top: 30px; border-top: 1px solid #e5e7eb; padding-top: 15px;">
    Bu e-posta, otomasyonmagazasi.com.tr üzerindeki iletişim formu aracılığıyla gönderilmiştir.
    <br>Gönderim Tarihi: {sent_at}
  </p>
</div>
"""


class ContactService:
    def submit(self, form: ContactRequest) -> MailResponse:
        name = (form.name or "").strip()
        email = (form.email or "").strip()
        subject = (form.subject or "").strip()
        message = (form.message or "").strip()
        if not (name and email and subject and message):
            raise HTTPException(status_code=400, detail="Lütfen tüm alanları doldurunuz.")
        email_error = validate_email(email)
        if email_error:
            raise HTTPException(status_code=400, detail=email_error)

        sent_at = format_tr_datetime(datetime.now(TURKEY_TZ))
        try:
            message_id = mailer.send_email(
                to_email=settings.contact_recipient,
                subject=f"İletişim Formu: {subject}",
                text=f"{message}\n\n{name} <{email}>\nGönderim Tarihi: {sent_at}",
                html=render_contact_html(name, email, subject, message, sent_at),
                from_name=name,
                reply_to=email,
            )
        except mailer.MailerNotConfigured as e:
            logger.error(f"Contact form received but SMTP is not configured: {e}")
            raise HTTPException(status_code=500, detail=SMTP_GENERIC_ERROR)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Contact form SMTP failure: {type(e).__name__}: {e}")
            raise HTTPException(status_code=500, detail=smtp_error_message(e))

        return MailResponse(success=True, message="Mesajınız başarıyla gönderildi!", message_id=message_id)

    def send_email(self, body: SendEmailRequest) -> MailResponse:
        """Transactional mail; the recipient defaults to the contact inbox"""
        to_email = (body.to or "").strip() or settings.contact_recipient
        try:
            message_id = mailer.send_email(
                to_email=to_email,
                subject=body.subject or "İletişim Formu",
                text=body.text or "",
                html=body.html or None,
                from_name=body.from_name,
            )
        except (mailer.MailerNotConfigured, smtplib.SMTPException, OSError) as e:
            logger.error(f"Send e-mail failed: {type(e).__name__}: {e}")
            detail = "E-posta gönderilirken bir hata oluştu"
            if settings.is_development:
                detail = f"{detail}: {e}"
            raise HTTPException(status_code=500, detail=detail)
        return MailResponse(success=True, message="E-posta başarıyla gönderildi", message_id=message_id)

    def send_sms(self, body: SendSmsRequest) -> SmsResponse:
        if not isinstance(body.to, str) or not isinstance(body.message, str) \
                or not body.to.strip() or not body.message.strip():
            raise HTTPException(status_code=400, detail="Invalid payload")
        try:
            sid = sms.send_sms(body.to.strip(), body.message)
        except sms.SmsNotConfigured:
            logger.error("Twilio credentials are missing")
            raise HTTPException(status_code=500, detail="Twilio credentials missing")
        except sms.SmsSendError as e:
            raise HTTPException(status_code=502, detail=str(e))
        return SmsResponse(success=True, sid=sid)
