"""
Celery tasks for work-order delivery.

Warm recipients get one SendGrid email each; the cold recipients of an
outreach are pushed to the trade's Instantly campaign in one batch.
"""

import logging
from uuid import UUID
from celery import shared_task
from app.core.database import SessionLocal
from app.core.timeutils import utcnow
from app.models.outreach import DispatchMethod, WorkOrderOutreach, WorkOrderRecipient
from app.services.instantly_client import InstantlyClient, build_cold_lead_payload, get_campaign_id_for_trade
from app.services.sendgrid_service import SendGridService

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    name="app.tasks.dispatch_tasks.send_warm_dispatch_email_task",
    max_retries=3,
    default_retry_delay=60,  # Retry after 60 seconds
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,  # Max 10 minutes between retries
    retry_jitter=True
)
def send_warm_dispatch_email_task(self, recipient_id: str):
    """
    Send the work-order email to one warm recipient.

    Already-sent and unsubscribed recipients are skipped. When SendGrid is
    not configured the email is skipped without retrying.

    Args:
        recipient_id: WorkOrderRecipient id

    Raises:
        Exception: If SendGrid rejects the message (triggers Celery retry)
    """
    db = SessionLocal()
    try:
        recipient = db.query(WorkOrderRecipient).filter(WorkOrderRecipient.id == UUID(str(recipient_id))).first()
        if recipient is None:
            logger.warning(f"Recipient {recipient_id} not found, skipping work order email")
            return {"status": "skipped", "reason": "recipient not found"}

        if recipient.email_sent:
            return {"status": "skipped", "reason": "already sent"}

        technician = recipient.technician
        if technician is None or technician.unsubscribed_at is not None:
            return {"status": "skipped", "reason": "technician unavailable"}

        sendgrid = SendGridService()
        if not sendgrid.is_configured:
            logger.warning(f"SendGrid not configured, work order email to {recipient.email} not sent")
            return {"status": "skipped", "reason": "sendgrid not configured"}

        job = recipient.outreach.job
        logger.info(f"Sending work order {job.id} to {recipient.email} (attempt {self.request.retries + 1})")

        if not sendgrid.send_work_order(job, technician, str(recipient.id)):
            raise Exception(f"Failed to send work order email to {recipient.email}")

        recipient.email_sent = True
        recipient.email_sent_at = utcnow()
        db.commit()

        return {"status": "success", "email": recipient.email}

    except Exception as e:
        db.rollback()
        logger.error(f"Error sending work order email for recipient {recipient_id}: {str(e)}")

        if self.request.retries >= self.max_retries:
            logger.error(f"All retry attempts exhausted for recipient {recipient_id}")

        raise
    finally:
        db.close()


@shared_task(
    bind=True,
    name="app.tasks.dispatch_tasks.push_cold_leads_task",
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True
)
def push_cold_leads_task(self, outreach_id: str):
    """
    Add the unsent cold recipients of an outreach to the trade's Instantly campaign.

    Raises:
        Exception: If Instantly rejects the batch (triggers Celery retry)
    """
    db = SessionLocal()
    try:
        outreach = db.query(WorkOrderOutreach).filter(WorkOrderOutreach.id == UUID(str(outreach_id))).first()
        if outreach is None:
            logger.warning(f"Outreach {outreach_id} not found, skipping cold lead push")
            return {"status": "skipped", "reason": "outreach not found"}

        job = outreach.job
        recipients = [
            recipient for recipient in outreach.recipients
            if recipient.dispatch_method == DispatchMethod.INSTANTLY_COLD
            and not recipient.email_sent
            and recipient.cold_lead is not None
            and recipient.cold_lead.unsubscribed_at is None
        ]
        if not recipients:
            return {"status": "skipped", "reason": "no cold recipients"}

        campaign_id = get_campaign_id_for_trade(job.trade_needed)
        if not campaign_id:
            logger.warning(f"No Instantly campaign configured for {job.trade_needed}, {len(recipients)} cold leads not pushed")
            return {"status": "skipped", "reason": "no campaign configured"}

        instantly = InstantlyClient()
        leads = [build_cold_lead_payload(recipient.cold_lead, job, str(recipient.id)) for recipient in recipients]
        result = instantly.add_leads(campaign_id, leads)

        if not result["success"]:
            raise Exception(f"Instantly rejected {len(leads)} leads for campaign {campaign_id}")

        now = utcnow()
        for recipient in recipients:
            recipient.email_sent = True
            recipient.email_sent_at = now
        db.commit()

        logger.info(f"Pushed {result['added']} cold leads for job {job.id} to campaign {campaign_id}")
        return {"status": "success", "added": result["added"], "campaign_id": campaign_id}

    except Exception as e:
        db.rollback()
        logger.error(f"Error pushing cold leads for outreach {outreach_id}: {str(e)}")
        raise
    finally:
        db.close()
