"""
Tests for the Hunter.io, Instantly and SendGrid clients.

Each client takes an httpx transport; these tests use httpx.MockTransport
so nothing leaves the process.
"""

import json
import uuid
from datetime import datetime
from types import SimpleNamespace

import httpx

from app.core.config import settings
from app.models.job import JobUrgency
from app.services.hunter_client import HunterClient, guess_domain
from app.services.instantly_client import InstantlyClient, build_cold_lead_payload, get_campaign_id_for_trade
from app.services.sendgrid_service import SendGridService, build_work_order_template_data


def mock(handler):
    return httpx.MockTransport(handler)


def fake_job(**overrides):
    data = {
        "id": uuid.UUID("11111111-2222-3333-4444-555555555555"),
        "job_title": "AC not cooling",
        "trade_needed": "HVAC",
        "description": "Rooftop unit blowing warm air",
        "address_text": "500 Congress Ave",
        "urgency": JobUrgency.SAME_DAY,
        "scheduled_at": None,
        "budget_max": None,
    }
    data.update(overrides)
    return SimpleNamespace(**data)


class TestHunterClient:

    def test_no_api_key(self):
        client = HunterClient(api_key="")

        assert client.get_account_info() == {"success": False, "error": "Hunter.io API key not configured"}

    def test_find_email_splits_full_name_and_guesses_domain(self):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            seen["path"] = request.url.path
            return httpx.Response(200, json={"data": {"email": "jane@acmeheatingair.com", "score": 91, "sources": []}})

        client = HunterClient(api_key="key", transport=mock(handler))
        result = client.find_email(full_name="Jane Q Doe", company="Acme Heating & Air")

        assert result["success"] is True
        assert result["email"] == "jane@acmeheatingair.com"
        assert result["confidence"] == 91
        assert seen["path"] == "/v2/email-finder"
        assert seen["domain"] == "acmeheatingair.com"
        assert seen["first_name"] == "Jane"
        assert seen["last_name"] == "Q Doe"
        assert seen["api_key"] == "key"

    def test_find_email_requires_name(self):
        client = HunterClient(api_key="key", transport=mock(lambda request: httpx.Response(500)))

        assert client.find_email(company="Acme")["error"] == "First name is required"

    def test_no_email_found(self):
        client = HunterClient(api_key="key", transport=mock(lambda request: httpx.Response(200, json={"data": {}})))

        result = client.find_email(first_name="Jane", company="Acme")

        assert result["success"] is False
        assert result["error"] == "No email found"

    def test_error_statuses(self):
        responses = {
            401: (httpx.Response(401), "Invalid Hunter.io API key"),
            429: (httpx.Response(429), "Hunter.io rate limit exceeded"),
            400: (httpx.Response(400, json={"errors": [{"details": "Bad domain"}]}), "Bad domain"),
            503: (httpx.Response(503, text="down"), "API error: 503"),
        }
        for response, message in responses.values():
            client = HunterClient(api_key="key", transport=mock(lambda request, r=response: r))
            assert client.verify_email("a@b.com")["error"] == message

    def test_account_info(self):
        body = {"data": {"requests": {
            "searches": {"used": 20, "available": 25},
            "verifications": {"used": 60, "available": 50},
        }}}
        client = HunterClient(api_key="key", transport=mock(lambda request: httpx.Response(200, json=body)))

        info = client.get_account_info()

        assert info["searches"] == {"used": 20, "available": 25, "remaining": 5}
        assert info["verifications"]["remaining"] == 0

    def test_guess_domain(self):
        assert guess_domain("Acme Heating & Air") == "acmeheatingair.com"


class TestInstantlyClient:

    def test_add_leads_sends_api_key_in_body(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "success"})

        client = InstantlyClient(api_key="inst-key", transport=mock(handler))
        result = client.add_leads("camp-1", [{"email": "a@b.com"}, {"email": "c@d.com"}])

        assert result == {"success": True, "added": 2, "errors": []}
        assert seen["path"] == "/api/v1/lead/add"
        assert seen["body"]["api_key"] == "inst-key"
        assert seen["body"]["campaign_id"] == "camp-1"

    def test_add_no_leads_skips_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        client = InstantlyClient(api_key="inst-key", transport=mock(handler))

        assert client.add_leads("camp-1", []) == {"success": True, "added": 0, "errors": []}

    def test_failures_are_falsy(self):
        client = InstantlyClient(api_key="inst-key", transport=mock(lambda request: httpx.Response(500)))

        assert client.add_leads("camp-1", [{"email": "a@b.com"}]) == {
            "success": False, "added": 0, "errors": ["request failed"],
        }
        assert client.get_campaign("camp-1") is None
        assert client.list_campaigns() == []

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = InstantlyClient(api_key="inst-key", transport=mock(handler))

        assert client.get_campaign_analytics("camp-1") is None

    def test_campaign_for_trade(self):
        ids = {"HVAC": "camp-hvac", "Plumbing": "camp-plumb", "Electrical": ""}

        assert get_campaign_id_for_trade("plumbing", ids) == "camp-plumb"
        assert get_campaign_id_for_trade("Electrical", ids) == "camp-hvac"
        assert get_campaign_id_for_trade(None, ids) == "camp-hvac"
        assert get_campaign_id_for_trade("Roofing", {}) is None

    def test_cold_lead_payload(self, monkeypatch):
        monkeypatch.setattr(settings, "APP_URL", "https://dispatch.example.com/")
        lead = SimpleNamespace(
            email="lead@coldmail.com", full_name="Sam Rivera Jr", first_name=None, last_name=None,
            company_name="Rivera HVAC", phone=None,
        )
        job = fake_job(scheduled_at=datetime(2026, 7, 4, 9, 0))

        payload = build_cold_lead_payload(lead, job, recipient_id="r-1")

        assert payload["first_name"] == "Sam"
        assert payload["last_name"] == "Rivera Jr"
        assert "phone_number" not in payload
        variables = payload["custom_variables"]
        assert variables["urgency"] == "same_day"
        assert variables["job_scheduled"] == "07/04/2026"
        assert variables["accept_url"] == f"https://dispatch.example.com/jobs/{job.id}/respond?recipient=r-1"

    def test_cold_lead_payload_without_job(self):
        lead = SimpleNamespace(
            email="lead@coldmail.com", full_name=None, first_name=None, last_name=None,
            company_name=None, phone="512-555-0100",
        )

        payload = build_cold_lead_payload(lead)

        assert payload["first_name"] == "there"
        assert payload["phone_number"] == "512-555-0100"
        assert "custom_variables" not in payload


class TestSendGridService:

    def test_not_configured(self):
        def handler(request):
            raise AssertionError("no request expected")

        service = SendGridService(api_key="key", template_id="", transport=mock(handler))

        assert service.is_configured is False
        assert service.send_template_email("a@b.com", "A", {}) is False

    def test_send_template_email(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(202, headers={"X-Message-Id": "msg-1"})

        service = SendGridService(api_key="sg-key", template_id="d-123", transport=mock(handler))

        assert service.send_template_email("pat@example.com", "Pat Lee", {"tech_name": "Pat"}) is True
        assert seen["path"] == "/v3/mail/send"
        assert seen["auth"] == "Bearer sg-key"
        assert seen["body"]["template_id"] == "d-123"
        to = seen["body"]["personalizations"][0]["to"][0]
        assert to == {"email": "pat@example.com", "name": "Pat Lee"}

    def test_rejected_message(self):
        service = SendGridService(
            api_key="sg-key", template_id="d-123", transport=mock(lambda request: httpx.Response(400, text="bad"))
        )

        assert service.send_template_email("pat@example.com", None, {}) is False

    def test_template_data(self):
        job = fake_job(budget_max=1500)
        technician = SimpleNamespace(full_name="Pat Lee", email="pat@example.com")

        data = build_work_order_template_data(job, technician, "r-9", app_url="https://dispatch.example.com")

        assert data["tech_name"] == "Pat"
        assert data["urgency"] == "Same Day"
        assert data["budget"] == "$1,500"
        assert data["scheduled"] == "ASAP"
        assert data["accept_url"] == f"https://dispatch.example.com/jobs/{job.id}/respond?recipient=r-9"

    def test_template_data_placeholders(self):
        job = fake_job(job_title=None, address_text=None, urgency=None)
        technician = SimpleNamespace(full_name="", email="x@example.com")

        data = build_work_order_template_data(job, technician, "r-1", app_url="https://dispatch.example.com")

        assert data["tech_name"] == "there"
        assert data["job_title"] == "New Job"
        assert data["location"] == "See details"
        assert data["urgency"] == "Standard"
        assert data["budget"] == "TBD"
