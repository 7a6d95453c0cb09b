import logging
from typing import List
from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_user, require_org_admin
from app.models.organization import MembershipRole, Organization, OrgMembership
from app.models.user import User
from app.schemas.user import MemberAddRequest, MembershipResponse, OrganizationCreateRequest, OrganizationResponse
from app.services.audit_service import log_audit

router = APIRouter(prefix="/organizations", tags=["Organizations"])
logger = logging.getLogger(__name__)


@router.post("/", status_code=201, response_model=OrganizationResponse)
def create_organization(
    request: OrganizationCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create an organization owned by the current user."""
    organization = Organization(name=request.name.strip())
    db.add(organization)
    db.flush()

    db.add(OrgMembership(user_id=current_user.id, org_id=organization.id, role=MembershipRole.OWNER))
    log_audit(db, "organization", organization.id, "created", actor_id=current_user.id, org_id=organization.id)
    db.commit()
    db.refresh(organization)

    logger.info(f"Organization {organization.id} created by {current_user.email}")
    return organization


@router.get("/", response_model=List[OrganizationResponse])
def list_organizations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Organizations the current user belongs to."""
    return (
        db.query(Organization)
        .join(OrgMembership, OrgMembership.org_id == Organization.id)
        .filter(OrgMembership.user_id == current_user.id)
        .order_by(OrgMembership.created_at.asc())
        .all()
    )


@router.post("/members", status_code=201, response_model=MembershipResponse)
def add_member(
    request: MemberAddRequest,
    membership: OrgMembership = Depends(require_org_admin),
    db: Session = Depends(get_db)
):
    """
    Add an existing user to the current organization.

    Only owners can grant the owner role.
    """
    role = MembershipRole(request.role)
    if role == MembershipRole.OWNER and membership.role != MembershipRole.OWNER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only owners can add owners")

    user = db.query(User).filter(func.lower(User.email) == request.email.lower()).first()
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    existing = (
        db.query(OrgMembership)
        .filter(OrgMembership.user_id == user.id, OrgMembership.org_id == membership.org_id)
        .first()
    )
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User is already a member of this organization")

    new_membership = OrgMembership(user_id=user.id, org_id=membership.org_id, role=role)
    db.add(new_membership)
    log_audit(
        db, "organization", membership.org_id, "updated", actor_id=membership.user_id, org_id=membership.org_id,
        metadata={"member_added": user.email, "role": role.value},
    )
    db.commit()

    return MembershipResponse(
        org_id=membership.org_id,
        organization_name=membership.organization.name,
        role=role.value,
    )
