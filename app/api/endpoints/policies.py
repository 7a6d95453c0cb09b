"""
Compliance policy endpoints.

Policies are organization-scoped requirement sets. Scores evaluate every
technician the organization owns against one policy.
"""

import logging
from typing import List
from uuid import UUID
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.deps import get_current_org_id, require_org_admin
from app.models.compliance import CompliancePolicy
from app.models.organization import OrgMembership
from app.schemas.credential import PolicyCreate, PolicyEvaluation, PolicyResponse
from app.services.compliance import PolicyNotFoundError, create_policy, get_policy, get_policy_scores

router = APIRouter(prefix="/policies", tags=["Compliance"])
logger = logging.getLogger(__name__)


@router.post("/", status_code=201, response_model=PolicyResponse)
def create_compliance_policy(
    request: PolicyCreate,
    membership: OrgMembership = Depends(require_org_admin),
    db: Session = Depends(get_db)
):
    """Create a policy (organization owners and admins)."""
    policy = create_policy(
        db,
        org_id=membership.org_id,
        name=request.name,
        items=[item.model_dump() for item in request.items],
        description=request.description,
        actor_id=membership.user_id,
    )
    logger.info(f"Created compliance policy {policy.id} for org {membership.org_id}")
    return policy


@router.get("/", response_model=List[PolicyResponse])
def list_policies(
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    return (
        db.query(CompliancePolicy)
        .filter(CompliancePolicy.org_id == org_id)
        .order_by(CompliancePolicy.created_at.desc())
        .all()
    )


@router.get("/{policy_id}", response_model=PolicyResponse)
def get_compliance_policy(
    policy_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    try:
        return get_policy(db, policy_id, org_id)
    except PolicyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{policy_id}/scores", response_model=List[PolicyEvaluation])
def get_compliance_scores(
    policy_id: UUID,
    org_id: UUID = Depends(get_current_org_id),
    db: Session = Depends(get_db)
):
    """Every technician of the organization evaluated against the policy; passing and best first."""
    try:
        policy = get_policy(db, policy_id, org_id)
    except PolicyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return get_policy_scores(db, policy)
