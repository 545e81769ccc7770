"""
Email notifications for the candidate interview flow.

Sending is best-effort: a failure is logged and never fails the request
that triggered it.
"""

from typing import Optional
import logging

from starlette.concurrency import run_in_threadpool

from core.config import settings
from core.integrations.email import EmailService, EmailTemplates, get_email_service

logger = logging.getLogger(__name__)


class NotificationService:
    """Sends interview emails through the SMTP ``EmailService``."""

    def __init__(
        self,
        email_service: Optional[EmailService] = None,
        enabled: Optional[bool] = None,
        base_url: Optional[str] = None,
    ):
        self.email_service = email_service or get_email_service()
        self.enabled = settings.email_notifications_enabled if enabled is None else enabled
        self.base_url = (base_url or settings.app_base_url).rstrip("/")

    def resume_link(self, position_id: str, application_id: str) -> str:
        return f"{self.base_url}/public/{position_id}/start/{application_id}"

    def review_link(self, application_id: str) -> str:
        return f"{self.base_url}/dashboard/applications/{application_id}"

    async def _send(self, to_email: str, template: dict) -> bool:
        if not self.enabled:
            logger.debug(f"Email notifications disabled, skipping '{template['subject']}'")
            return False
        try:
            return await run_in_threadpool(self.email_service.send_template, to_email, template)
        except Exception as e:
            logger.error(f"Notification '{template['subject']}' failed: {e}")
            return False

    async def application_started(
        self,
        applicant_name: str,
        applicant_email: str,
        position_id: str,
        position_title: str,
        application_id: str,
    ) -> bool:
        template = EmailTemplates.application_started(
            applicant_name=applicant_name,
            position=position_title,
            resume_link=self.resume_link(position_id, application_id),
        )
        return await self._send(applicant_email, template)

    async def application_completed(
        self,
        applicant_name: str,
        applicant_email: str,
        position_title: str,
        application_id: str,
        manager_name: Optional[str] = None,
        manager_email: Optional[str] = None,
    ) -> dict:
        """
        Notify the applicant and, when known, the position's manager.

        Returns:
            Delivery flags keyed by recipient kind
        """
        sent = {
            "applicant": await self._send(
                applicant_email,
                EmailTemplates.application_completed(applicant_name=applicant_name, position=position_title),
            ),
            "manager": False,
        }
        if manager_email:
            sent["manager"] = await self._send(
                manager_email,
                EmailTemplates.interview_ready_for_review(
                    manager_name=manager_name or "Hiring Manager",
                    applicant_name=applicant_name,
                    applicant_email=applicant_email,
                    position=position_title,
                    review_link=self.review_link(application_id),
                ),
            )
        return sent


def get_notification_service() -> NotificationService:
    return NotificationService()
