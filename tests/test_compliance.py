"""
Tests for organization compliance policies.

Tests cover:
- Requirement codes (COI, workers comp, state license, certifications)
- Weighted policy evaluation
- Policy creation, lookup, job linking and technician scores
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.models.audit_log import AuditLog
from app.models.credential import ContractorCertification, ContractorInsurance, InsuranceType
from app.services.compliance import (
    PolicyNotFoundError,
    attach_policy_to_job,
    create_policy,
    evaluate_policy,
    get_policy,
    get_policy_scores,
    requirement_met,
)

NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def item(code, required=True, weight=10, min_valid_days=0):
    return SimpleNamespace(requirement_code=code, required=required, weight=weight, min_valid_days=min_valid_days)


def tech(state="TX", insurance=(), licenses=(), certifications=()):
    return SimpleNamespace(
        state=state, insurance=list(insurance), licenses=list(licenses), certifications=list(certifications)
    )


def insured(insurance_type, days):
    expiration = NOW + timedelta(days=days) if days is not None else None
    return SimpleNamespace(insurance_type=insurance_type, expiration_date=expiration)


class TestRequirements:

    def test_coi_valid(self):
        assert requirement_met(tech(insurance=[insured(InsuranceType.GENERAL_LIABILITY, 30)]), item("COI_VALID"), NOW)
        assert not requirement_met(tech(insurance=[insured(InsuranceType.GENERAL_LIABILITY, -1)]), item("COI_VALID"), NOW)
        assert not requirement_met(tech(), item("COI_VALID"), NOW)

    def test_coi_without_expiration_fails(self):
        technician = tech(insurance=[insured(InsuranceType.GENERAL_LIABILITY, None)])

        assert not requirement_met(technician, item("COI_VALID"), NOW)

    def test_min_valid_days(self):
        technician = tech(insurance=[insured(InsuranceType.GENERAL_LIABILITY, 20)])

        assert requirement_met(technician, item("COI_VALID", min_valid_days=20), NOW)
        assert not requirement_met(technician, item("COI_VALID", min_valid_days=21), NOW)

    def test_workers_comp(self):
        technician = tech(insurance=[insured(InsuranceType.WORKERS_COMP, 90)])

        assert requirement_met(technician, item("WORKERS_COMP"), NOW)
        assert not requirement_met(technician, item("COI_VALID"), NOW)

    def test_license_state(self):
        license = SimpleNamespace(issuing_state="tx", expiration_date=None)

        assert requirement_met(tech(state="TX", licenses=[license]), item("LICENSE_STATE"), NOW)
        assert not requirement_met(tech(state="OK", licenses=[license]), item("LICENSE_STATE"), NOW)

    def test_certification_by_name(self):
        cert = SimpleNamespace(certification_name="EPA 608 ", expiration_date=None)

        assert requirement_met(tech(certifications=[cert]), item("CERTIFICATION:epa 608"), NOW)
        assert not requirement_met(tech(certifications=[cert]), item("CERTIFICATION:NATE"), NOW)

    def test_unknown_code(self):
        assert not requirement_met(tech(), item("BACKGROUND_CHECK"), NOW)


class TestEvaluatePolicy:

    def test_all_passed(self):
        policy = SimpleNamespace(items=[item("COI_VALID"), item("WORKERS_COMP")])
        technician = tech(insurance=[
            insured(InsuranceType.GENERAL_LIABILITY, 90),
            insured(InsuranceType.WORKERS_COMP, 90),
        ])

        assert evaluate_policy(policy, technician, NOW) == {"meets_all": True, "score": 100, "failed": []}

    def test_weighted_score(self):
        policy = SimpleNamespace(items=[item("COI_VALID", weight=30), item("WORKERS_COMP", weight=10)])
        technician = tech(insurance=[insured(InsuranceType.GENERAL_LIABILITY, 90)])

        result = evaluate_policy(policy, technician, NOW)

        assert result == {"meets_all": False, "score": 75, "failed": ["WORKERS_COMP"]}

    def test_optional_item_does_not_block(self):
        policy = SimpleNamespace(items=[item("COI_VALID"), item("CERTIFICATION:NATE", required=False)])
        technician = tech(insurance=[insured(InsuranceType.GENERAL_LIABILITY, 90)])

        result = evaluate_policy(policy, technician, NOW)

        assert result["meets_all"] is True
        assert result["score"] == 50
        assert result["failed"] == ["CERTIFICATION:NATE"]

    def test_empty_policy(self):
        assert evaluate_policy(SimpleNamespace(items=[]), tech(), NOW) == {"meets_all": True, "score": 100, "failed": []}


class TestPolicyPersistence:
    """Policies stored per organization"""

    def test_create_policy(self, db_session, org, test_user):
        policy = create_policy(
            db_session, org.id, "Commercial HVAC",
            items=[{"requirement_code": "COI_VALID", "weight": 40}, {"requirement_code": "LICENSE_STATE"}],
            description="Downtown office buildings",
            actor_id=test_user.id,
        )

        assert policy.name == "Commercial HVAC"
        assert sorted(i.requirement_code for i in policy.items) == ["COI_VALID", "LICENSE_STATE"]
        audit = db_session.query(AuditLog).filter(AuditLog.entity_id == policy.id).one()
        assert audit.action == "created"
        assert audit.extra == {"requirements": ["COI_VALID", "LICENSE_STATE"]}

    def test_get_policy_scoped_to_org(self, db_session, org, user_factory, org_factory):
        policy = create_policy(db_session, org.id, "Basic", items=[{"requirement_code": "COI_VALID"}])
        other = org_factory(user_factory("other@example.com"), name="Other Co")

        assert get_policy(db_session, policy.id, org.id).id == policy.id
        with pytest.raises(PolicyNotFoundError):
            get_policy(db_session, policy.id, other.id)

    def test_attach_policy_to_job(self, db_session, org, make_job):
        policy = create_policy(db_session, org.id, "Basic", items=[{"requirement_code": "COI_VALID"}])
        job = make_job(org.id)

        attached = attach_policy_to_job(db_session, policy.id, job)

        assert attached is policy
        assert job.policy_id == policy.id
        assert policy.job_id == job.id

    def test_attach_foreign_policy_ignored(self, db_session, org, make_job, user_factory, org_factory):
        other = org_factory(user_factory("other@example.com"), name="Other Co")
        policy = create_policy(db_session, other.id, "Theirs", items=[{"requirement_code": "COI_VALID"}])
        job = make_job(org.id)

        assert attach_policy_to_job(db_session, policy.id, job) is None
        assert job.policy_id is None

    def test_policy_scores(self, db_session, org, make_technician):
        policy = create_policy(
            db_session, org.id, "Insured",
            items=[{"requirement_code": "COI_VALID", "weight": 50}, {"requirement_code": "CERTIFICATION:EPA 608", "weight": 50}],
        )
        compliant = make_technician(org.id, full_name="Compliant Tech")
        partial = make_technician(org.id, full_name="Partial Tech")
        make_technician(org.id, full_name="Bare Tech")

        expires = datetime.now(timezone.utc) + timedelta(days=180)
        for technician in (compliant, partial):
            db_session.add(ContractorInsurance(
                technician_id=technician.id,
                insurance_type=InsuranceType.GENERAL_LIABILITY,
                expiration_date=expires,
            ))
        db_session.add(ContractorCertification(technician_id=compliant.id, certification_name="EPA 608"))
        db_session.commit()
        db_session.expire_all()

        scores = get_policy_scores(db_session, policy)

        assert [entry["technician_name"] for entry in scores] == ["Compliant Tech", "Partial Tech", "Bare Tech"]
        assert [entry["score"] for entry in scores] == [100, 50, 0]
        assert scores[0]["meets_all"] is True
        assert scores[1]["failed"] == ["CERTIFICATION:EPA 608"]

    def test_policy_scores_exclude_other_orgs(self, db_session, org, public_pool, make_technician):
        policy = create_policy(db_session, org.id, "Basic", items=[{"requirement_code": "COI_VALID"}])
        make_technician(public_pool.id)

        assert get_policy_scores(db_session, policy) == []
