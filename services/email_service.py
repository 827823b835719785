import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """
    Centralized email utility for ProjeX.
    Sends signup codes and password-setup links via SendGrid.
    """

    def __init__(self, api_key: Optional[str] = None, sender_email: Optional[str] = None):
        self.sendgrid_api_key = api_key or settings.SENDGRID_API_KEY
        self.sender_email = sender_email or settings.MAIL_FROM

        self.enabled = bool(self.sendgrid_api_key and self.sender_email)
        if not self.enabled:
            logger.warning("📧 Email service not configured. Missing SENDGRID_API_KEY or MAIL_FROM.")
        else:
            logger.info("📧 Email service configured and ready. Sender: %s", self.sender_email)

    def _send(self, to_email: str, subject: str, html_content: str) -> bool:
        try:
            message = Mail(
                from_email=self.sender_email,
                to_emails=to_email,
                subject=subject,
                html_content=html_content,
            )
            sg = SendGridAPIClient(self.sendgrid_api_key)
            response = sg.send(message)
            logger.info("✅ Email '%s' sent to %s. Status: %s", subject, to_email, response.status_code)
            return True
        except Exception as e:
            logger.exception("❌ Failed to send email to %s: %s", to_email, e)
            return False

    # ============================================================
    # ✅ Signup verification code
    # ============================================================
    def send_otp_email(self, to_email: str, otp: str, name: Optional[str] = None) -> bool:
        if not self.enabled:
            # Development fallback (no SendGrid setup)
            logger.info("📨 [Mock Email] Verification code to: %s", to_email)
            return True

        minutes = settings.OTP_EXPIRE_SECONDS // 60
        html_content = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2>👋 Hello{' ' + name if name else ''}!</h2>
            <p>Use the code below to verify your email address on <b>ProjeX</b>:</p>
            <p style="text-align: center; font-size: 28px; letter-spacing: 6px; font-weight: bold;">{otp}</p>
            <p><small>This code expires in {minutes} minutes.</small></p>
            <hr style="border:none; border-top:1px solid #eee; margin: 24px 0;">
            <p>Best regards,<br><strong>The ProjeX Team</strong></p>
        </div>
        """
        return self._send(to_email, "Your ProjeX verification code", html_content)

    # ============================================================
    # ✅ Password setup link for provisioned accounts
    # ============================================================
    def send_password_setup_email(self, to_email: str, name: str, role_label: str, setup_link: str) -> bool:
        if not self.enabled:
            logger.info("📨 [Mock Email] Password setup link to: %s (%s)", to_email, role_label)
            return True

        html_content = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <h2>👋 Hello {name}!</h2>
            <p>An account has been created for you on <b>ProjeX</b> as
            <strong>{role_label}</strong>.</p>

            <p>Click below to set your password:</p>

            <p style="text-align: center; margin: 20px 0;">
                <a href="{setup_link}" style="
                    background-color: #4F46E5;
                    color: white;
                    padding: 12px 28px;
                    text-decoration: none;
                    border-radius: 6px;
                    font-weight: bold;
                    display: inline-block;
                ">Set Password</a>
            </p>

            <p>If the button doesn't work, copy and paste this link into your browser:</p>
            <p style="word-break: break-all; color: #555;">{setup_link}</p>

            <p><small>This link expires in {settings.PASSWORD_SETUP_EXPIRE_HOURS} hours.</small></p>
            <hr style="border:none; border-top:1px solid #eee; margin: 24px 0;">
            <p>Best regards,<br><strong>The ProjeX Team</strong></p>
        </div>
        """
        return self._send(to_email, f"Set up your ProjeX {role_label} account", html_content)


# ============================================================
# ✅ Global instance for app-wide import
# ============================================================
email_service = EmailService()
