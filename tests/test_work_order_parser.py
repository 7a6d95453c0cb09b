"""
Tests for work order parsing.

Tests cover:
- Regex extraction (no OpenAI key)
- Normalization of extracted fields
- OpenAI extraction with a fake async client, and fallback on failure
- POST /work-orders/parse
"""

import asyncio
import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from app.services.work_order_parser import (
    WorkOrderParseError,
    heuristic_parse,
    normalize_parsed,
    parse_work_order,
    parse_work_order_with_ai,
)


WORK_ORDER = (
    "EMERGENCY: Rooftop AC unit down at 2200 E Riverside Dr, Austin, TX 78741. "
    "Contact: Dana Wells (512) 555-0142, dana@example.com. "
    "Schedule 3/15/2027 at 2:30 pm. Est 2-4 hours. Budget $400 - $1,200."
)


def fake_async_openai(contents):
    """Returns each content in turn; an Exception instance is raised instead."""
    calls = []

    async def create(**kwargs):
        calls.append(kwargs)
        content = contents[min(len(calls), len(contents)) - 1]
        if isinstance(content, Exception):
            raise content
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


@pytest.fixture
def no_backoff(monkeypatch):
    async def instant(seconds):
        return None

    monkeypatch.setattr("app.services.work_order_parser.asyncio", SimpleNamespace(sleep=instant))


class TestHeuristicParse:

    def test_full_work_order(self):
        parsed = heuristic_parse(WORK_ORDER)

        assert parsed["trade_needed"] == "HVAC"
        assert parsed["urgency"] == "emergency"
        assert parsed["address_text"] == "2200 E Riverside Dr, Austin, TX 78741"
        assert parsed["city"] == "Austin"
        assert parsed["state"] == "TX"
        assert parsed["scheduled_at"] == "2027-03-15T14:30:00"
        assert parsed["duration"] == "2-4 hours"
        assert parsed["budget_min"] == 400
        assert parsed["budget_max"] == 1200
        assert parsed["contact_name"] == "Dana Wells"
        assert parsed["contact_phone"] == "(512) 555-0142"
        assert parsed["contact_email"] == "dana@example.com"
        assert parsed["description"] == WORK_ORDER
        assert parsed["job_title"].startswith("EMERGENCY: Rooftop AC unit down")

    def test_defaults_to_tomorrow_morning(self):
        parsed = heuristic_parse(
            "Leaking pipe under the kitchen sink, send a plumber tomorrow",
            now=datetime(2026, 5, 1, 15, 0),
        )

        assert parsed["trade_needed"] == "Plumbing"
        assert parsed["urgency"] == "next_day"
        assert parsed["scheduled_at"] == "2026-05-02T09:00:00"
        assert parsed["contact_phone"] is None
        assert parsed["budget_min"] is None
        assert parsed["address_text"] is None

    def test_named_date_and_pay_rate(self):
        parsed = heuristic_parse("Electrical panel swap on March 3, 2027 at 8:00 am, pays $95/hr")

        assert parsed["trade_needed"] == "Electrical"
        assert parsed["scheduled_at"] == "2027-03-03T08:00:00"
        assert parsed["pay_rate"] == "$95/hr"
        assert parsed["urgency"] == "within_week"


class TestNormalizeParsed:

    def test_coercion(self):
        result = normalize_parsed({
            "trade_needed": " plumbing ",
            "urgency": "Same Day",
            "budget_min": "$1,200",
            "budget_max": 300,
            "state": "tx",
            "scheduled_at": "next tuesday",
            "contact_email": "  ",
            "required_certifications": ["EPA 608", None, ""],
        })

        assert result["trade_needed"] == "Plumbing"
        assert result["urgency"] == "same_day"
        assert result["budget_min"] == 300
        assert result["budget_max"] == 1200
        assert result["state"] == "TX"
        assert result["scheduled_at"] is None
        assert result["contact_email"] is None
        assert result["required_certifications"] == ["EPA 608"]

    def test_unknown_values(self):
        result = normalize_parsed({"trade_needed": "Roofing", "urgency": "whenever", "budget_max": True})

        assert result["trade_needed"] == "Other"
        assert result["urgency"] is None
        assert result["budget_max"] is None
        assert result["required_certifications"] == []

    def test_scheduled_start_ts_alias(self):
        result = normalize_parsed({"scheduled_start_ts": "2027-01-05T10:00:00Z"})

        assert result["scheduled_at"] == "2027-01-05T10:00:00Z"


class TestAIParse:

    def test_openai_result(self):
        content = json.dumps({"job_title": "Fix RTU", "trade_needed": "hvac", "urgency": "emergency", "budget_max": "900"})
        client, calls = fake_async_openai([content])

        parsed = asyncio.run(parse_work_order("RTU-3 down, need tech ASAP", client=client))

        assert parsed["source"] == "openai"
        assert parsed["job_title"] == "Fix RTU"
        assert parsed["trade_needed"] == "HVAC"
        assert parsed["budget_max"] == 900
        assert calls[0]["response_format"] == {"type": "json_object"}

    def test_retries_bad_json(self, no_backoff):
        client, calls = fake_async_openai(["not json", json.dumps({"job_title": "Second try"})])

        parsed = asyncio.run(parse_work_order_with_ai("some work order text", client=client))

        assert parsed["job_title"] == "Second try"
        assert len(calls) == 2

    def test_gives_up(self, no_backoff):
        client, calls = fake_async_openai([RuntimeError("boom")])

        with pytest.raises(WorkOrderParseError):
            asyncio.run(parse_work_order_with_ai("some work order text", max_retries=2, client=client))
        assert len(calls) == 2

    def test_falls_back_to_heuristics(self, no_backoff):
        client, _ = fake_async_openai([json.dumps(["not", "an", "object"])])

        parsed = asyncio.run(parse_work_order(WORK_ORDER, client=client))

        assert parsed["source"] == "heuristic"
        assert parsed["city"] == "Austin"

    def test_no_key_uses_heuristics(self):
        parsed = asyncio.run(parse_work_order(WORK_ORDER))

        assert parsed["source"] == "heuristic"


class TestParseEndpoint:

    def test_parse(self, client, auth_headers, org):
        response = client.post("/api/v1/work-orders/parse", json={"text": WORK_ORDER}, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["source"] == "heuristic"
        assert data["urgency"] == "emergency"
        assert data["contact_email"] == "dana@example.com"

    def test_text_too_short(self, client, auth_headers, org):
        response = client.post("/api/v1/work-orders/parse", json={"text": "fix it"}, headers=auth_headers)

        assert response.status_code == 422

    def test_requires_auth(self, client):
        response = client.post("/api/v1/work-orders/parse", json={"text": WORK_ORDER})

        assert response.status_code in (401, 403)
