import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from opsdesk.core.config import settings

logger = logging.getLogger(__name__)


def send_email(to_addr: str, subject: str, body: str) -> None:
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured; email to %s not sent: %s", to_addr, subject)
        return

    msg = MIMEMultipart()
    msg["From"] = settings.MAIL_FROM
    msg["To"] = to_addr
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "plain", "utf-8"))

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.starttls()
        if settings.SMTP_USER:
            server.login(settings.SMTP_USER, settings.SMTP_PASS)
        server.sendmail(settings.MAIL_FROM, to_addr, msg.as_string())
    logger.info("email sent to %s: %s", to_addr, subject)


def send_password_reset(to_addr: str, token: str) -> None:
    link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
    body = (
        "Someone asked to reset the password for this account.\n\n"
        f"Open this link to choose a new password:\n{link}\n\n"
        f"The link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
        "If you did not ask for this, ignore this email.\n"
    )
    send_email(to_addr, "Reset your OpsDesk password", body)
