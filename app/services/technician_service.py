"""
Technician registration and outreach unsubscribes.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.timeutils import utcnow
from app.models.lead import ColdLead, OutreachUnsubscribe
from app.models.organization import Organization
from app.models.rating import JobRating
from app.models.technician import Technician
from app.services.audit_service import log_audit
from app.services.geocoding import geocode_address

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_RADIUS_MILES = 50


class TechnicianExistsError(Exception):
    """A technician with this email is already registered"""
    pass


def get_or_create_public_pool(db: Session) -> Organization:
    """The organization owning self-registered technicians. Caller commits."""
    pool = db.query(Organization).filter(Organization.id == settings.PUBLIC_POOL_ORG_ID).first()
    if pool is None:
        pool = Organization(id=settings.PUBLIC_POOL_ORG_ID, name=settings.PUBLIC_POOL_ORG_NAME)
        db.add(pool)
        db.flush()
        logger.info(f"Created public technician pool organization {pool.id}")
    return pool


def signup_technician(db: Session, data: Dict, org_id: Optional[UUID] = None, actor_id: Optional[UUID] = None) -> Dict:
    """
    Register a technician.

    Without an organization the technician joins the public pool. The
    address is geocoded when Google Maps is configured; a failed lookup
    leaves the coordinates empty.

    Returns:
        {"technician": Technician, "geocoded": bool}

    Raises:
        TechnicianExistsError: Email already registered
    """
    email = data["email"].strip().lower()

    if db.query(Technician).filter(func.lower(Technician.email) == email).first():
        raise TechnicianExistsError("A technician with this email already exists")

    if org_id is None:
        org_id = get_or_create_public_pool(db).id

    coordinates = geocode_address(data.get("address_text"), data.get("city"), data.get("state"))

    technician = Technician(
        org_id=org_id,
        full_name=data["full_name"].strip(),
        email=email,
        phone=data.get("phone"),
        trade=data["trade_needed"].strip(),
        company_name=data.get("company_name"),
        years_experience=data.get("years_experience"),
        address_text=data.get("address_text"),
        city=data.get("city"),
        state=data["state"].upper() if data.get("state") else None,
        lat=coordinates[0] if coordinates else None,
        lng=coordinates[1] if coordinates else None,
        service_radius=DEFAULT_SERVICE_RADIUS_MILES,
        is_available=True,
        signed_up=True,
    )
    db.add(technician)
    db.flush()

    log_audit(
        db, "technician", technician.id, "created", actor_id=actor_id, org_id=org_id,
        metadata={"trade": technician.trade, "geocoded": coordinates is not None},
    )
    db.commit()
    db.refresh(technician)

    logger.info(f"Technician signed up: {technician.email} ({technician.trade}, {technician.city}, {technician.state})")
    return {"technician": technician, "geocoded": coordinates is not None}


def get_technician(db: Session, technician_id: UUID, org_id: Optional[UUID] = None) -> Optional[Technician]:
    """A technician visible to the organization (its own or the public pool)."""
    query = db.query(Technician).filter(Technician.id == technician_id)
    if org_id is not None:
        query = query.filter(Technician.org_id.in_([org_id, settings.PUBLIC_POOL_ORG_ID]))
    return query.first()


def get_technician_ratings(db: Session, technician_id: UUID) -> List[JobRating]:
    return (
        db.query(JobRating)
        .filter(JobRating.technician_id == technician_id)
        .order_by(JobRating.created_at.desc())
        .all()
    )


def unsubscribe(db: Session, email: str, unsubscribe_type: str = "cold", now: Optional[datetime] = None) -> Dict:
    """
    Stop outreach to an email address.

    Warm unsubscribes stamp the technician and clear signed_up; cold ones
    stamp the cold lead. Either way the address goes on the global
    unsubscribe list.

    Returns:
        {"email", "technicians", "cold_leads"} with the number of rows stamped
    """
    now = now or utcnow()
    email = email.strip().lower()

    technicians = 0
    cold_leads = 0

    if unsubscribe_type == "warm":
        for technician in db.query(Technician).filter(func.lower(Technician.email) == email).all():
            technician.unsubscribed_at = now
            technician.signed_up = False
            technicians += 1
    else:
        for lead in db.query(ColdLead).filter(func.lower(ColdLead.email) == email).all():
            lead.unsubscribed_at = now
            cold_leads += 1

    entry = db.query(OutreachUnsubscribe).filter(OutreachUnsubscribe.email == email).first()
    if entry is None:
        db.add(OutreachUnsubscribe(email=email, unsubscribe_type=unsubscribe_type, unsubscribed_at=now))
    else:
        entry.unsubscribe_type = unsubscribe_type
        entry.unsubscribed_at = now

    db.commit()

    logger.info(f"Unsubscribed {email} ({unsubscribe_type}): {technicians} technicians, {cold_leads} cold leads")
    return {"email": email, "technicians": technicians, "cold_leads": cold_leads}
