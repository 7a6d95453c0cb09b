"""
Organization compliance policies.

A policy is a list of weighted requirements. Evaluating a technician
against it yields whether every required item passes, a 0-100 score
(passed weight over total weight) and the failed requirement codes.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.rounding import round_half_up
from app.core.timeutils import utcnow
from app.models.compliance import CompliancePolicy, CompliancePolicyItem
from app.models.credential import InsuranceType
from app.models.technician import Technician
from app.services.audit_service import log_audit
from app.services.contractor_scoring import days_until

logger = logging.getLogger(__name__)

CERTIFICATION_PREFIX = "CERTIFICATION:"


class PolicyNotFoundError(Exception):
    pass


def _valid_for(expiration_date: Optional[datetime], min_valid_days: int, now: datetime, allow_no_expiry: bool) -> bool:
    if expiration_date is None:
        return allow_no_expiry
    days_left = days_until(expiration_date, now)
    return days_left >= 0 and days_left >= min_valid_days


def _insurance_valid(technician, insurance_type: InsuranceType, min_valid_days: int, now: datetime) -> bool:
    return any(
        policy.insurance_type == insurance_type
        and _valid_for(policy.expiration_date, min_valid_days, now, allow_no_expiry=False)
        for policy in technician.insurance or []
    )


def requirement_met(technician, item, now: datetime) -> bool:
    """Whether a technician satisfies one policy item."""
    code = item.requirement_code
    min_days = item.min_valid_days or 0

    if code == "COI_VALID":
        return _insurance_valid(technician, InsuranceType.GENERAL_LIABILITY, min_days, now)

    if code == "WORKERS_COMP":
        return _insurance_valid(technician, InsuranceType.WORKERS_COMP, min_days, now)

    if code == "LICENSE_STATE":
        state = (technician.state or "").upper()
        return any(
            (license.issuing_state or "").upper() == state
            and _valid_for(license.expiration_date, min_days, now, allow_no_expiry=True)
            for license in technician.licenses or []
        )

    if code.startswith(CERTIFICATION_PREFIX):
        name = code[len(CERTIFICATION_PREFIX):].strip().lower()
        return any(
            (cert.certification_name or "").strip().lower() == name
            and _valid_for(cert.expiration_date, min_days, now, allow_no_expiry=True)
            for cert in technician.certifications or []
        )

    logger.warning(f"Unknown requirement code {code}")
    return False


def evaluate_policy(policy, technician, now: Optional[datetime] = None) -> Dict:
    """
    Evaluate a technician against a policy.

    Returns:
        {"meets_all": bool, "score": 0-100, "failed": [requirement codes]}
    """
    now = now or utcnow()

    total_weight = 0
    passed_weight = 0
    meets_all = True
    failed = []

    for item in policy.items:
        total_weight += item.weight
        if requirement_met(technician, item, now):
            passed_weight += item.weight
        else:
            failed.append(item.requirement_code)
            if item.required:
                meets_all = False

    score = round_half_up(100 * passed_weight / total_weight) if total_weight else 100
    return {"meets_all": meets_all, "score": score, "failed": failed}


def create_policy(
    db: Session,
    org_id: UUID,
    name: str,
    items: List[Dict],
    description: Optional[str] = None,
    actor_id: Optional[UUID] = None,
) -> CompliancePolicy:
    policy = CompliancePolicy(org_id=org_id, name=name, description=description)
    policy.items = [CompliancePolicyItem(**item) for item in items]
    db.add(policy)
    db.flush()

    log_audit(
        db, "policy", policy.id, "created", actor_id=actor_id, org_id=org_id,
        metadata={"requirements": [item["requirement_code"] for item in items]},
    )
    db.commit()
    db.refresh(policy)
    return policy


def get_policy(db: Session, policy_id: UUID, org_id: UUID) -> CompliancePolicy:
    policy = (
        db.query(CompliancePolicy)
        .filter(CompliancePolicy.id == policy_id, CompliancePolicy.org_id == org_id)
        .first()
    )
    if policy is None:
        raise PolicyNotFoundError(f"Policy {policy_id} not found")
    return policy


def attach_policy_to_job(db: Session, policy_id: UUID, job) -> Optional[CompliancePolicy]:
    """
    Link a policy to a job (policy.job_id and job.policy_id). Caller commits.

    Policies of another organization are ignored.
    """
    policy = (
        db.query(CompliancePolicy)
        .filter(CompliancePolicy.id == policy_id, CompliancePolicy.org_id == job.org_id)
        .first()
    )
    if policy is None:
        logger.warning(f"Policy {policy_id} not found for org {job.org_id}, not linked to job {job.id}")
        return None

    policy.job_id = job.id
    job.policy_id = policy.id
    return policy


def get_policy_scores(db: Session, policy: CompliancePolicy, now: Optional[datetime] = None) -> List[Dict]:
    """Evaluate every technician of the policy's organization, best score first."""
    now = now or utcnow()
    technicians = db.query(Technician).filter(Technician.org_id == policy.org_id).all()

    scores = []
    for technician in technicians:
        result = evaluate_policy(policy, technician, now)
        scores.append({
            "technician_id": technician.id,
            "technician_name": technician.full_name,
            **result,
        })

    scores.sort(key=lambda entry: (not entry["meets_all"], -entry["score"]))
    return scores
