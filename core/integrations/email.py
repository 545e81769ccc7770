"""Email integration utilities for sending emails."""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, List
import logging

from core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
    ):
        """
        Initialize email service.

        Unset arguments fall back to the SMTP settings.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name

    def send_email(
        self,
        to_email: str | List[str],
        subject: str,
        body: str,
        html: bool = False,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address(es)
            subject: Email subject
            body: Email body
            html: Whether body is HTML
            reply_to: Reply-to email address

        Returns:
            True if email sent successfully
        """
        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"

        recipients = list(to_email) if isinstance(to_email, list) else [to_email]
        msg['To'] = ", ".join(recipients)
        msg['Subject'] = subject

        if reply_to:
            msg['Reply-To'] = reply_to

        msg.attach(MIMEText(body, 'html' if html else 'plain'))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            return False

        logger.info(f"Email sent: {subject}")
        return True

    def send_template(self, to_email: str | List[str], template: dict) -> bool:
        """Send one of the ``EmailTemplates``."""
        return self.send_email(
            to_email,
            subject=template['subject'],
            body=template['body'],
            html=template.get('html', False),
        )


# Pre-configured email templates
class EmailTemplates:
    """Pre-configured email templates."""

    @staticmethod
    def application_started(applicant_name: str, position: str, resume_link: str) -> dict:
        """Sent to the applicant when an interview is started."""
        return {
            'subject': f'Interview Started - {position}',
            'body': f"""
                <html>
                <body>
                    <h2>Interview Application Started</h2>
                    <p>Dear {applicant_name},</p>
                    <p>Thank you for starting your application for the <strong>{position}</strong> position.</p>
                    <p>You can continue your interview at any time here: <a href="{resume_link}">{resume_link}</a></p>
                    <p>Best regards,<br>The Hiring Team</p>
                </body>
                </html>
            """,
            'html': True
        }

    @staticmethod
    def application_completed(applicant_name: str, position: str) -> dict:
        """Sent to the applicant once all answers are submitted."""
        return {
            'subject': f'Interview Completed - {position}',
            'body': f"""
                <html>
                <body>
                    <h2>Interview Application Completed</h2>
                    <p>Dear {applicant_name},</p>
                    <p>Thank you for completing your interview for the <strong>{position}</strong> position.</p>
                    <p>Your responses have been submitted and are now being reviewed by our hiring team.</p>
                    <p>Best regards,<br>The Hiring Team</p>
                </body>
                </html>
            """,
            'html': True
        }

    @staticmethod
    def interview_ready_for_review(
        manager_name: str,
        applicant_name: str,
        applicant_email: str,
        position: str,
        review_link: str,
    ) -> dict:
        """Sent to the position's manager when an applicant completes."""
        return {
            'subject': f'New Interview Completed - {position}',
            'body': f"""
                <html>
                <body>
                    <h2>New Interview Completed</h2>
                    <p>Dear {manager_name},</p>
                    <p><strong>{applicant_name}</strong> ({applicant_email}) has completed their interview
                    for the <strong>{position}</strong> position.</p>
                    <p>Review their responses here: <a href="{review_link}">{review_link}</a></p>
                </body>
                </html>
            """,
            'html': True
        }


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
