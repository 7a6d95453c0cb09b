"""
Lead pipeline: license_records staging table -> cold_leads.

1. Selection   - rank unselected staged records for the job (AI or heuristic)
2. Verification - find emails with Hunter.io, bounded by remaining credits
3. Move        - insert verified, non-duplicate records into cold_leads
"""

import logging
import time
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.timeutils import utcnow
from app.models.job import Job
from app.models.lead import ColdLead, LicenseRecord
from app.services.hunter_client import HunterClient
from app.services.lead_selector import select_contractors

logger = logging.getLogger(__name__)

STAGING_FETCH_LIMIT = 100
HUNTER_REQUEST_DELAY_SECONDS = 0.5


def _result(success: bool, pipeline_ran: bool, **extra) -> Dict:
    result = {
        "success": success,
        "pipeline_ran": pipeline_ran,
        "selected": 0,
        "verified": 0,
        "moved_to_cold": 0,
        "cold_lead_ids": [],
        "hunter_credits_used": 0,
        "error": None,
        "skipped_reason": None,
    }
    result.update(extra)
    return result


def count_undispatched_cold_leads(db: Session, trade: str, state: Optional[str]) -> int:
    query = db.query(ColdLead).filter(
        ColdLead.trade_type.ilike(f"%{trade}%"),
        ColdLead.dispatch_count == 0,
        ColdLead.unsubscribed_at.is_(None),
    )
    if state:
        query = query.filter(ColdLead.state == state)
    return query.count()


def move_verified_to_cold(
    db: Session,
    min_confidence: int = 70,
    record_ids: Optional[List[UUID]] = None,
    limit: Optional[int] = None,
) -> Dict:
    """
    Insert verified staged records into cold_leads.

    Records whose email already exists in cold_leads are marked moved and
    skipped. Caller commits.

    Returns:
        {"moved": [cold lead ids], "skipped": int}
    """
    query = db.query(LicenseRecord).filter(
        LicenseRecord.ai_selected.is_(True),
        LicenseRecord.email_verified.is_(True),
        LicenseRecord.moved_to_cold_leads.is_(False),
        LicenseRecord.email.isnot(None),
        LicenseRecord.hunter_confidence >= min_confidence,
    )
    if record_ids:
        query = query.filter(LicenseRecord.id.in_(record_ids))
    if limit:
        query = query.limit(limit)
    records = query.all()

    if not records:
        return {"moved": [], "skipped": 0}

    emails = [record.email.lower() for record in records]
    existing = {
        email.lower()
        for (email,) in db.query(ColdLead.email).filter(ColdLead.email.in_(emails)).all()
    }

    moved = []
    skipped = 0
    now = utcnow()

    for record in records:
        email = record.email.lower()
        if email in existing:
            record.moved_to_cold_leads = True
            skipped += 1
            continue

        trade = record.trade_type or "General"
        lead = ColdLead(
            email=email,
            supersearch_query=f"{trade} contractors in {record.city or 'Unknown'}, {record.state or 'Unknown'}",
            full_name=record.full_name,
            first_name=record.first_name,
            last_name=record.last_name,
            company_name=record.business_name,
            job_title=record.job_title or "Contractor",
            phone=record.phone,
            address=record.address,
            city=record.city,
            state=record.state,
            country="USA",
            trade_type=record.trade_type,
            lead_source=record.source,
            license_number=record.license_number,
            license_expiration=record.license_expiration,
            license_status=record.license_status,
            license_classification=record.license_classification,
            email_verified=True,
            enriched_at=record.email_verification_date or now,
            enrichment_source="hunter.io",
            enrichment_credits_used=1,
            dispatch_count=0,
        )
        db.add(lead)
        db.flush()

        record.moved_to_cold_leads = True
        record.cold_lead_id = lead.id
        existing.add(email)
        moved.append(lead.id)
        logger.info(f"Moved {email} to cold lead {lead.id}")

    return {"moved": moved, "skipped": skipped}


def run_lead_pipeline(
    db: Session,
    job: Job,
    select_limit: int = 20,
    verify_limit: int = 10,
    min_confidence: int = 70,
    skip_if_cold_exists: bool = True,
    hunter: Optional[HunterClient] = None,
    selector_client=None,
    request_delay: float = HUNTER_REQUEST_DELAY_SECONDS,
) -> Dict:
    """
    Run selection, verification and move for a job.

    Never raises for expected conditions (no credits, no candidates); those
    are reported in the result. Commits its own progress.

    Hunter lookups are spaced by request_delay seconds with time.sleep, so
    this blocks its caller; dispatch runs it inline when a job has no warm
    technicians and no cold leads, which lengthens that dispatch request.

    Returns:
        {"success", "pipeline_ran", "selected", "verified", "moved_to_cold",
         "cold_lead_ids", "hunter_credits_used", "error", "skipped_reason"}
    """
    logger.info(f"Lead pipeline starting for job {job.id}: {job.trade_needed} in {job.city}, {job.state}")

    if skip_if_cold_exists:
        existing = count_undispatched_cold_leads(db, job.trade_needed, job.state)
        if existing > 0:
            return _result(True, False, skipped_reason=f"{existing} matching cold leads already exist")

    hunter = hunter or HunterClient()
    account = hunter.get_account_info()
    if not account["success"]:
        return _result(False, False, error=account.get("error") or "Failed to check Hunter.io account status")

    credits = account["searches"]["remaining"]
    if credits == 0:
        return _result(False, False, error="No Hunter.io credits available")
    if credits < verify_limit:
        logger.warning(f"Low Hunter.io credits: {credits} remaining")

    # Step 1: selection
    candidates = (
        db.query(LicenseRecord)
        .filter(LicenseRecord.ai_selected.is_(False), LicenseRecord.state == job.state)
        .order_by(LicenseRecord.created_at.desc())
        .limit(STAGING_FETCH_LIMIT)
        .all()
    )
    if not candidates:
        return _result(True, True, skipped_reason="No candidates available in staging table")

    selection = select_contractors(
        candidates,
        trade_needed=job.trade_needed,
        job_city=job.city,
        job_state=job.state,
        limit=select_limit,
        job_lat=job.lat,
        job_lng=job.lng,
        client=selector_client,
    )
    if not selection["success"] or not selection["selected"]:
        return _result(True, True, skipped_reason=selection.get("error") or "No contractors matched selection criteria")

    now = utcnow()
    for entry in selection["selected"]:
        record = entry["record"]
        record.ai_selected = True
        record.ai_selection_date = now
        record.ai_selection_score = entry["score"]
    db.commit()
    selected_count = len(selection["selected"])
    logger.info(f"Selected {selected_count} contractors ({selection.get('method')})")

    # Step 2: verification
    to_verify = (
        db.query(LicenseRecord)
        .filter(
            LicenseRecord.ai_selected.is_(True),
            LicenseRecord.email_verified.is_(False),
            LicenseRecord.email.is_(None),
        )
        .limit(min(verify_limit, credits))
        .all()
    )

    verified = 0
    credits_used = 0
    for index, record in enumerate(to_verify):
        # Hunter.io rate limit; blocks the calling request or worker
        if index and request_delay:
            time.sleep(request_delay)

        found = hunter.find_email(
            first_name=record.first_name,
            last_name=record.last_name,
            full_name=record.full_name,
            company=record.business_name,
        )
        credits_used += 1

        record.email = found.get("email")
        record.hunter_confidence = found.get("confidence") or 0
        record.email_verification_date = utcnow()

        if found["success"] and found["email"] and found["confidence"] >= min_confidence:
            record.email_verified = True
            verified += 1
        else:
            record.email_verified = False
            logger.info(f"Verification failed for {record.business_name}: {found.get('error') or 'low confidence'}")

        db.commit()

    # Step 3: move to cold leads
    moved = move_verified_to_cold(db, min_confidence=min_confidence)
    db.commit()

    logger.info(f"Lead pipeline complete for job {job.id}: {selected_count} selected, {verified} verified, {len(moved['moved'])} moved")
    return _result(
        True,
        True,
        selected=selected_count,
        verified=verified,
        moved_to_cold=len(moved["moved"]),
        cold_lead_ids=moved["moved"],
        hunter_credits_used=credits_used,
    )


def get_pipeline_status(db: Session, hunter: Optional[HunterClient] = None) -> Dict:
    """Whether the pipeline can run now, with credit and staging counts."""
    hunter = hunter or HunterClient()
    account = hunter.get_account_info()
    credits = account["searches"]["remaining"] if account["success"] else 0

    pending_verification = (
        db.query(LicenseRecord)
        .filter(
            LicenseRecord.ai_selected.is_(True),
            LicenseRecord.email_verified.is_(False),
            LicenseRecord.email.is_(None),
        )
        .count()
    )
    ready_to_move = (
        db.query(LicenseRecord)
        .filter(
            LicenseRecord.ai_selected.is_(True),
            LicenseRecord.email_verified.is_(True),
            LicenseRecord.moved_to_cold_leads.is_(False),
        )
        .count()
    )
    unselected = db.query(LicenseRecord).filter(LicenseRecord.ai_selected.is_(False)).count()

    can_run = True
    reason = None
    if credits == 0:
        can_run = False
        reason = account.get("error") or "No Hunter.io credits available"
    elif pending_verification == 0 and ready_to_move == 0 and unselected == 0:
        can_run = False
        reason = "No records available for pipeline"

    return {
        "can_run": can_run,
        "reason": reason,
        "hunter_credits": credits,
        "pending_verification": pending_verification,
        "ready_to_move": ready_to_move,
    }
