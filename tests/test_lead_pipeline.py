"""
Tests for contractor selection and the staged-record lead pipeline.

Hunter.io and OpenAI are replaced with small fakes.
"""

import json
from types import SimpleNamespace

import pytest

from app.models.lead import ColdLead, LicenseRecord
from app.services.lead_pipeline import get_pipeline_status, move_verified_to_cold, run_lead_pipeline
from app.services.lead_selector import heuristic_score, pre_filter_candidates, select_contractors


class FakeHunter:
    def __init__(self, remaining=10, emails=None, account_error=None):
        self.remaining = remaining
        self.emails = emails or {}
        self.account_error = account_error
        self.lookups = []

    def get_account_info(self):
        if self.account_error:
            return {"success": False, "error": self.account_error}
        return {
            "success": True,
            "searches": {"used": 0, "available": self.remaining, "remaining": self.remaining},
            "verifications": {"used": 0, "available": 0, "remaining": 0},
        }

    def find_email(self, first_name=None, last_name=None, full_name=None, company=None):
        self.lookups.append(full_name)
        if full_name not in self.emails:
            return {"success": False, "email": None, "confidence": 0, "error": "No email found"}
        email, confidence = self.emails[full_name]
        return {"success": True, "email": email, "confidence": confidence}


def fake_openai(content=None, error=None):
    def create(**kwargs):
        if error:
            raise error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def record(**overrides):
    data = {
        "business_name": "Cool Air LLC",
        "full_name": "Ann Cole",
        "city": "Austin",
        "state": "TX",
        "trade_type": "HVAC",
        "license_status": "Active",
        "phone": None,
        "lat": None,
        "lng": None,
        "license_classification": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest.fixture
def stage(db_session):
    def _stage(**overrides):
        data = {
            "business_name": "Cool Air LLC",
            "full_name": "Ann Cole",
            "city": "Austin",
            "state": "TX",
            "trade_type": "HVAC",
            "license_status": "Active",
            "source": "TDLR",
        }
        data.update(overrides)
        entry = LicenseRecord(**data)
        db_session.add(entry)
        db_session.commit()
        return entry

    return _stage


class TestLeadSelector:

    def test_heuristic_score(self):
        assert heuristic_score(record(phone="512-555-0100"), "HVAC", "austin") == 100
        assert heuristic_score(record(trade_type="General", city="Dallas", license_status=None), "HVAC", "Austin") == 60

    def test_distance_penalty_is_capped(self):
        far = record(city="El Paso", lat=31.76, lng=-106.49)

        assert heuristic_score(far, "HVAC", "Austin", 30.2672, -97.7431) == 70

    def test_pre_filter(self):
        keep = record()
        general = record(trade_type="General")
        rejects = [
            record(city=None),
            record(trade_type="Plumbing"),
            record(state="OK"),
            record(license_status="Revoked"),
        ]

        assert pre_filter_candidates([keep, general] + rejects, "HVAC", "TX") == [keep, general]

    def test_no_records(self):
        result = select_contractors([], "HVAC", "Austin", "TX")

        assert result["success"] is False
        assert result["error"] == "No contractors provided"

    def test_nothing_matches(self):
        result = select_contractors([record(trade_type="Roofing")], "HVAC", "Austin", "TX")

        assert result["success"] is False
        assert result["total_candidates"] == 1

    def test_heuristic_ranking(self):
        best = record(full_name="Best", phone="1")
        other = record(full_name="Other", city="Round Rock")

        result = select_contractors([other, best], "HVAC", "Austin", "TX", limit=1)

        assert result["method"] == "heuristic"
        assert [entry["record"] for entry in result["selected"]] == [best]

    def test_ai_ranking(self):
        first = record(full_name="First")
        second = record(full_name="Second")
        content = json.dumps({"selected": [{"idx": 1, "score": 88, "reason": "closest"}, {"idx": 7}]})

        result = select_contractors([first, second], "HVAC", "Austin", "TX", client=fake_openai(content))

        assert result["method"] == "ai"
        assert len(result["selected"]) == 1
        assert result["selected"][0]["record"] is second
        assert result["selected"][0]["score"] == 88

    def test_ai_failure_falls_back(self):
        result = select_contractors(
            [record()], "HVAC", "Austin", "TX", client=fake_openai(error=RuntimeError("timeout"))
        )

        assert result["method"] == "heuristic"
        assert len(result["selected"]) == 1

    def test_ai_bad_shape_falls_back(self):
        result = select_contractors([record()], "HVAC", "Austin", "TX", client=fake_openai("[1, 2]"))

        assert result["method"] == "heuristic"


class TestRunLeadPipeline:

    def test_full_run(self, db_session, org, make_job, stage):
        job = make_job(org.id)
        ann = stage()
        bob = stage(business_name="Bob's HVAC", full_name="Bob Smith", city="Dallas")
        plumber = stage(full_name="Pat Pipe", trade_type="Plumbing")
        stage(full_name="Cal Coast", state="CA", city="San Diego")
        hunter = FakeHunter(emails={"Ann Cole": ("ann@coolair.com", 92), "Bob Smith": ("bob@bobshvac.com", 40)})

        result = run_lead_pipeline(db_session, job, hunter=hunter, request_delay=0)

        assert result["success"] is True
        assert result["pipeline_ran"] is True
        assert result["selected"] == 2
        assert result["verified"] == 1
        assert result["moved_to_cold"] == 1
        assert result["hunter_credits_used"] == 2
        assert sorted(hunter.lookups) == ["Ann Cole", "Bob Smith"]

        db_session.expire_all()
        lead = db_session.query(ColdLead).one()
        assert lead.email == "ann@coolair.com"
        assert lead.company_name == "Cool Air LLC"
        assert lead.trade_type == "HVAC"
        assert lead.dispatch_count == 0
        assert result["cold_lead_ids"] == [lead.id]
        assert ann.moved_to_cold_leads is True
        assert ann.cold_lead_id == lead.id
        assert bob.email_verified is False
        assert bob.hunter_confidence == 40
        assert plumber.ai_selected is False

    def test_skips_when_cold_leads_exist(self, db_session, org, make_job, make_cold_lead, stage):
        job = make_job(org.id)
        make_cold_lead()
        stage()
        hunter = FakeHunter()

        result = run_lead_pipeline(db_session, job, hunter=hunter, request_delay=0)

        assert result["pipeline_ran"] is False
        assert result["skipped_reason"] == "1 matching cold leads already exist"
        assert hunter.lookups == []

    def test_dispatched_cold_leads_do_not_block(self, db_session, org, make_job, make_cold_lead):
        job = make_job(org.id)
        make_cold_lead(dispatch_count=2)

        result = run_lead_pipeline(db_session, job, hunter=FakeHunter(), request_delay=0)

        assert result["skipped_reason"] == "No candidates available in staging table"

    def test_account_error(self, db_session, org, make_job):
        job = make_job(org.id)

        result = run_lead_pipeline(db_session, job, hunter=FakeHunter(account_error="Invalid Hunter.io API key"))

        assert result["success"] is False
        assert result["error"] == "Invalid Hunter.io API key"

    def test_no_credits(self, db_session, org, make_job, stage):
        job = make_job(org.id)
        stage()

        result = run_lead_pipeline(db_session, job, hunter=FakeHunter(remaining=0))

        assert result["success"] is False
        assert result["error"] == "No Hunter.io credits available"

    def test_verification_bounded_by_credits(self, db_session, org, make_job, stage):
        job = make_job(org.id)
        for n in range(3):
            stage(full_name=f"Tech {n}", business_name=f"Shop {n}")
        hunter = FakeHunter(remaining=2)

        result = run_lead_pipeline(db_session, job, hunter=hunter, request_delay=0)

        assert result["selected"] == 3
        assert result["hunter_credits_used"] == 2

    def test_lookups_spaced_by_request_delay(self, db_session, org, make_job, stage, monkeypatch):
        from app.services import lead_pipeline

        sleeps = []
        monkeypatch.setattr(lead_pipeline.time, "sleep", sleeps.append)
        job = make_job(org.id)
        for n in range(3):
            stage(full_name=f"Tech {n}", business_name=f"Shop {n}")

        result = run_lead_pipeline(db_session, job, hunter=FakeHunter(), request_delay=0.5)

        assert result["hunter_credits_used"] == 3
        assert sleeps == [0.5, 0.5]


class TestMoveVerified:

    def test_duplicate_email_marked_moved(self, db_session, make_cold_lead, stage):
        make_cold_lead(email="ann@coolair.com")
        entry = stage(ai_selected=True, email="Ann@CoolAir.com", email_verified=True, hunter_confidence=95)

        result = move_verified_to_cold(db_session)

        assert result == {"moved": [], "skipped": 1}
        assert entry.moved_to_cold_leads is True
        assert entry.cold_lead_id is None

    def test_confidence_threshold(self, db_session, stage):
        stage(ai_selected=True, email="ann@coolair.com", email_verified=True, hunter_confidence=65)

        assert move_verified_to_cold(db_session, min_confidence=70)["moved"] == []
        assert len(move_verified_to_cold(db_session, min_confidence=60)["moved"]) == 1


class TestPipelineStatus:

    def test_ready(self, db_session, stage):
        stage()
        stage(ai_selected=True)
        stage(ai_selected=True, email="x@y.com", email_verified=True, hunter_confidence=90)

        status = get_pipeline_status(db_session, hunter=FakeHunter(remaining=7))

        assert status == {
            "can_run": True,
            "reason": None,
            "hunter_credits": 7,
            "pending_verification": 1,
            "ready_to_move": 1,
        }

    def test_nothing_staged(self, db_session):
        status = get_pipeline_status(db_session, hunter=FakeHunter(remaining=7))

        assert status["can_run"] is False
        assert status["reason"] == "No records available for pipeline"

    def test_no_credits(self, db_session, stage):
        stage()

        status = get_pipeline_status(db_session, hunter=FakeHunter(remaining=0))

        assert status["reason"] == "No Hunter.io credits available"
