"""
Technician endpoints.

- POST /technicians/signup: Public self-registration (joins the public pool
  unless the caller is signed in)
- GET /technicians: Technicians of the current organization
- GET /technicians/{id}: Detail with credentials and compliance summary
- GET /technicians/{id}/compliance: Compliance summary only
- GET /technicians/{id}/ratings: Job ratings received
"""

import logging
from typing import List, Optional
from uuid import UUID
from fastapi import APIRouter, HTTPException, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_optional_user, get_current_org_id
from app.core.api_rate_limiter import check_signup_rate_limit, get_client_ip
from app.models.organization import OrgMembership
from app.models.technician import Technician
from app.models.user import User
from app.schemas.credential import (
    CertificationResponse,
    ComplianceSummary,
    InsuranceResponse,
    LicenseResponse,
)
from app.schemas.job import JobRatingResponse
from app.schemas.technician import (
    TechnicianDetailResponse,
    TechnicianRatingsResponse,
    TechnicianResponse,
    TechnicianSignupRequest,
    TechnicianSignupResponse,
)
from app.services.contractor_scoring import (
    calculate_compliance_score,
    calculate_composite_score,
    get_coi_status,
    get_compliance_grade,
)
from app.services.credential_service import get_all_credentials
from app.services.technician_service import (
    TechnicianExistsError,
    get_technician,
    get_technician_ratings,
    signup_technician,
)

router = APIRouter(prefix="/technicians", tags=["Technicians"])
logger = logging.getLogger(__name__)


def compliance_summary(technician: Technician) -> ComplianceSummary:
    score = calculate_compliance_score(technician)
    return ComplianceSummary(
        technician_id=technician.id,
        compliance_score=score,
        composite_score=calculate_composite_score(technician),
        grade=get_compliance_grade(score),
        coi_status=get_coi_status(technician.insurance),
    )


def _get_technician_or_404(db: Session, technician_id: UUID, org_id: UUID) -> Technician:
    technician = get_technician(db, technician_id, org_id)
    if technician is None:
        raise HTTPException(status_code=404, detail="Technician not found")
    return technician


@router.post("/signup", status_code=201, response_model=TechnicianSignupResponse)
def signup(
    request: TechnicianSignupRequest,
    http_request: Request,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Register a technician.

    Anonymous signups join the public technician pool, which every
    organization's dispatch can reach. A signed-in user adds the technician
    to their own organization.

    The address is geocoded with Google Maps when configured; without
    coordinates the technician is not matched by distance.
    """
    check_signup_rate_limit(get_client_ip(http_request))

    org_id = None
    if current_user is not None:
        membership = (
            db.query(OrgMembership)
            .filter(OrgMembership.user_id == current_user.id)
            .order_by(OrgMembership.created_at.asc())
            .first()
        )
        org_id = membership.org_id if membership else None

    try:
        result = signup_technician(
            db, request.model_dump(), org_id=org_id,
            actor_id=current_user.id if current_user else None,
        )
    except TechnicianExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    technician = result["technician"]
    message = "Signup complete"
    if not result["geocoded"]:
        message = "Signup complete. We could not locate your address, so distance matching is unavailable until it is updated."

    return TechnicianSignupResponse(
        technician=TechnicianResponse.model_validate(technician),
        geocoded=result["geocoded"],
        message=message,
    )


@router.get("/", response_model=List[TechnicianResponse])
def list_technicians(
    trade: Optional[str] = None,
    available_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Technicians owned by the current organization."""
    query = db.query(Technician).filter(Technician.org_id == org_id)
    if trade:
        query = query.filter(Technician.trade.ilike(trade))
    if available_only:
        query = query.filter(Technician.is_available.is_(True), Technician.unsubscribed_at.is_(None))
    return query.order_by(Technician.full_name.asc()).offset(skip).limit(limit).all()


@router.get("/{technician_id}", response_model=TechnicianDetailResponse)
def get_technician_detail(
    technician_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Technician with licenses, insurance, certifications and compliance summary."""
    technician = _get_technician_or_404(db, technician_id, org_id)
    credentials = get_all_credentials(db, technician.id)
    return TechnicianDetailResponse(
        **TechnicianResponse.model_validate(technician).model_dump(),
        licenses=[LicenseResponse.model_validate(c) for c in credentials["licenses"]],
        insurance=[InsuranceResponse.model_validate(c) for c in credentials["insurance"]],
        certifications=[CertificationResponse.model_validate(c) for c in credentials["certifications"]],
        compliance=compliance_summary(technician),
    )


@router.get("/{technician_id}/compliance", response_model=ComplianceSummary)
def get_technician_compliance(
    technician_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Compliance score, composite score, grade and COI status."""
    return compliance_summary(_get_technician_or_404(db, technician_id, org_id))


@router.get("/{technician_id}/ratings", response_model=TechnicianRatingsResponse)
def get_ratings(
    technician_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Ratings the technician received, newest first."""
    technician = _get_technician_or_404(db, technician_id, org_id)
    ratings = get_technician_ratings(db, technician.id)
    return TechnicianRatingsResponse(
        technician_id=technician.id,
        average_rating=technician.average_rating,
        total_ratings=len(ratings),
        ratings=[JobRatingResponse.model_validate(rating).model_dump(mode="json") for rating in ratings],
    )
