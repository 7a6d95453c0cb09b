"""
SendGrid email service for warm work-order emails.

Sends dynamic-template mail (v3 mail/send). The template itself lives in
SendGrid; this module only fills in its data.
"""

import logging
from typing import Dict, Optional
import httpx
from app.core.config import settings

logger = logging.getLogger(__name__)

SENDGRID_API_BASE = "https://api.sendgrid.com/v3"


def build_work_order_template_data(job, technician, recipient_id: str, app_url: Optional[str] = None) -> Dict[str, str]:
    """
    Dynamic template data for the work-order email.

    Missing job fields fall back to human-readable placeholders.
    """
    app_url = (app_url or settings.APP_URL).rstrip("/")
    first_name = (technician.full_name or "").split(" ")[0] or "there"

    return {
        "tech_name": first_name,
        "job_title": job.job_title or "New Job",
        "job_type": job.trade_needed or "Service",
        "location": job.address_text or "See details",
        "urgency": job.urgency.value.replace("_", " ").title() if job.urgency else "Standard",
        "description": job.description or "See full job details",
        "budget": f"${job.budget_max:,.0f}" if job.budget_max else "TBD",
        "scheduled": job.scheduled_at.strftime("%m/%d/%Y") if job.scheduled_at else "ASAP",
        "accept_url": f"{app_url}/jobs/{job.id}/respond?recipient={recipient_id}",
        "work_order_id": str(job.id),
        "tech_email": technician.email,
    }


class SendGridService:
    """
    Service for sending work-order emails via SendGrid.

    Pass a transport to route requests elsewhere (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        template_id: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SENDGRID_API_KEY
        self.template_id = template_id if template_id is not None else settings.SENDGRID_TEMPLATE_ID_WORK_ORDER
        self.client = httpx.Client(
            base_url=SENDGRID_API_BASE,
            transport=transport or httpx.HTTPTransport(retries=2),
            timeout=15.0,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.template_id)

    def send_template_email(self, to_email: str, to_name: Optional[str], template_data: Dict[str, str]) -> bool:
        """
        Send one dynamic-template email.

        Returns:
            bool: True if SendGrid accepted the message, False otherwise
        """
        if not self.is_configured:
            logger.warning(f"SendGrid not configured, skipping email to {to_email}")
            return False

        personalization = {"to": [{"email": to_email}], "dynamic_template_data": template_data}
        if to_name:
            personalization["to"][0]["name"] = to_name

        payload = {
            "from": {"email": settings.SENDGRID_FROM_EMAIL, "name": settings.SENDGRID_FROM_NAME},
            "personalizations": [personalization],
            "template_id": self.template_id,
        }

        try:
            response = self.client.post(
                "/mail/send",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"SendGrid request failed for {to_email}: {e}")
            return False

        if response.status_code >= 400:
            logger.error(f"SendGrid error for {to_email}: {response.status_code} {response.text}")
            return False

        logger.info(f"Work order email sent to {to_email} (message id: {response.headers.get('X-Message-Id')})")
        return True

    def send_work_order(self, job, technician, recipient_id: str) -> bool:
        data = build_work_order_template_data(job, technician, recipient_id)
        return self.send_template_email(technician.email, technician.full_name, data)
