"""
Contractor compliance scoring and ranking.

Compliance score (0-100) is a weighted sum over credential expirations:

    COI (general liability + workers comp)   50
    Licenses                                 30
    Certifications                           20

The composite score used to rank technicians for dispatch blends
compliance (70%), average rating on a 100-point scale (20%) and response
rate (10%).

All functions take `now` so callers and tests control the clock.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from app.core.rounding import round_half_up
from app.core.timeutils import ensure_utc, utcnow
from app.models.credential import InsuranceType

EXPIRING_SOON_DAYS = 30

LICENSE_MAX = 30
CERTIFICATION_MAX = 20


def days_until(expiration: datetime, now: datetime) -> int:
    """Whole days from now until expiration, floored (negative once expired)."""
    return (ensure_utc(expiration) - ensure_utc(now)) // timedelta(days=1)


def _find_insurance(insurance, insurance_type: InsuranceType):
    for policy in insurance or []:
        if policy.insurance_type == insurance_type:
            return policy
    return None


def calculate_coi_score(insurance, target_date: datetime, now: datetime) -> int:
    """General liability up to 35 points, workers comp up to 15."""
    if not insurance:
        return 0

    score = 0

    general_liability = _find_insurance(insurance, InsuranceType.GENERAL_LIABILITY)
    if general_liability is not None and general_liability.expiration_date is not None:
        days_to_expiry = days_until(general_liability.expiration_date, now)
        days_to_job = days_until(target_date, now)

        if days_to_expiry < 0:
            score += 0
        elif days_to_expiry < days_to_job:
            # Lapses before the job date
            score += 15
        elif days_to_expiry < EXPIRING_SOON_DAYS:
            score += 20
        else:
            score += 35

    workers_comp = _find_insurance(insurance, InsuranceType.WORKERS_COMP)
    if workers_comp is not None and workers_comp.expiration_date is not None:
        days_to_expiry = days_until(workers_comp.expiration_date, now)

        if days_to_expiry < 0:
            score += 0
        elif days_to_expiry < EXPIRING_SOON_DAYS:
            score += 8
        else:
            score += 15

    return score


def calculate_license_score(licenses, now: datetime) -> int:
    score = 0
    for license in licenses or []:
        if license.expiration_date is None:
            # Lifetime license
            score += 10
            continue

        days_to_expiry = days_until(license.expiration_date, now)
        if days_to_expiry < 0:
            score += 0
        elif days_to_expiry < EXPIRING_SOON_DAYS:
            score += 5
        else:
            score += 10

    return min(score, LICENSE_MAX)


def calculate_certification_score(certifications, now: datetime) -> int:
    score = 0
    for cert in certifications or []:
        if cert.expiration_date is None:
            score += 5
            continue

        days_to_expiry = days_until(cert.expiration_date, now)
        if days_to_expiry < 0:
            score += 0
        elif days_to_expiry < EXPIRING_SOON_DAYS:
            score += 3
        else:
            score += 5

    return min(score, CERTIFICATION_MAX)


def calculate_compliance_score(technician, job_date: Optional[datetime] = None, now: Optional[datetime] = None) -> int:
    """
    Calculate compliance score (0-100) from a technician's insurance,
    licenses and certifications.

    Args:
        technician: Object exposing insurance, licenses and certifications
        job_date: Scheduled job date; a certificate lapsing before it scores lower
        now: Reference time (default: current UTC time)
    """
    now = now or utcnow()
    target_date = job_date or now

    score = (
        calculate_coi_score(technician.insurance, target_date, now)
        + calculate_license_score(technician.licenses, now)
        + calculate_certification_score(technician.certifications, now)
    )
    return round_half_up(score)


def calculate_composite_score(technician, job_date: Optional[datetime] = None, now: Optional[datetime] = None) -> int:
    """
    Weighted ranking score: 0.7 * compliance + 0.2 * (rating * 20) + 0.1 * response rate.

    Missing rating or response rate counts as 0.
    """
    compliance_score = calculate_compliance_score(technician, job_date, now)
    rating_score = (technician.average_rating or 0) * 20
    response_score = technician.response_rate or 0

    composite = compliance_score * 0.7 + rating_score * 0.2 + response_score * 0.1
    return round_half_up(composite)


def rank_contractors(technicians, job_date: Optional[datetime] = None, now: Optional[datetime] = None) -> List[Dict]:
    """
    Rank technicians by composite score, highest first.

    The sort is stable: equal scores keep their input order.

    Returns:
        List of {"technician", "composite_score", "compliance_score"} dicts
    """
    now = now or utcnow()
    ranked = [
        {
            "technician": technician,
            "composite_score": calculate_composite_score(technician, job_date, now),
            "compliance_score": calculate_compliance_score(technician, job_date, now),
        }
        for technician in technicians
    ]
    ranked.sort(key=lambda entry: entry["composite_score"], reverse=True)
    return ranked


def get_compliance_grade(score: float) -> str:
    """Letter grade (A+ to F) for a 0-100 score."""
    thresholds = [
        (95, "A+"), (90, "A"), (85, "A-"),
        (80, "B+"), (75, "B"), (70, "B-"),
        (65, "C+"), (60, "C"), (55, "C-"),
        (50, "D"),
    ]
    for minimum, grade in thresholds:
        if score >= minimum:
            return grade
    return "F"


def get_coi_status(insurance, job_date: Optional[datetime] = None, now: Optional[datetime] = None) -> str:
    """
    Status of the general liability certificate.

    Returns one of "missing", "expired", "expiring_soon", "valid". With a job
    date, "expiring_soon" means the certificate lapses before the job;
    otherwise it means fewer than 30 days remain.
    """
    if not insurance:
        return "missing"

    general_liability = _find_insurance(insurance, InsuranceType.GENERAL_LIABILITY)
    if general_liability is None or general_liability.expiration_date is None:
        return "missing"

    now = now or utcnow()
    days_to_expiry = days_until(general_liability.expiration_date, now)

    if days_to_expiry < 0:
        return "expired"

    if job_date is not None:
        if days_to_expiry < days_until(job_date, now):
            return "expiring_soon"
    elif days_to_expiry < EXPIRING_SOON_DAYS:
        return "expiring_soon"

    return "valid"
