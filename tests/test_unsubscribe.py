"""
Tests for unsubscribe endpoints and the unsubscribe service.
"""

from datetime import datetime, timezone

from app.models.lead import OutreachUnsubscribe
from app.services.technician_service import unsubscribe


class TestUnsubscribeEndpoints:

    def test_warm_unsubscribe(self, client, db_session, org, make_technician):
        technician = make_technician(org.id, email="pat@example.com")

        response = client.post("/api/v1/unsubscribe/", json={"email": "Pat@example.com", "type": "warm"})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "email": "pat@example.com",
            "message": "You will no longer receive work order emails.",
        }
        db_session.expire_all()
        assert technician.unsubscribed_at is not None
        assert technician.signed_up is False

    def test_cold_is_default(self, client, db_session, make_cold_lead):
        lead = make_cold_lead(email="lead@coldmail.com")

        response = client.post("/api/v1/unsubscribe/", json={"email": "lead@coldmail.com"})

        assert response.json()["message"] == "You have been removed from our outreach list."
        db_session.expire_all()
        assert lead.unsubscribed_at is not None

    def test_link_target(self, client, db_session):
        response = client.get("/api/v1/unsubscribe/?email=someone@example.com&type=warm")

        assert response.status_code == 200
        assert response.json()["success"] is True
        entry = db_session.query(OutreachUnsubscribe).one()
        assert entry.email == "someone@example.com"
        assert entry.unsubscribe_type == "warm"

    def test_invalid_type(self, client):
        post = client.post("/api/v1/unsubscribe/", json={"email": "a@example.com", "type": "all"})
        get = client.get("/api/v1/unsubscribe/?email=a@example.com&type=all")

        assert post.status_code == 422
        assert get.status_code == 422

    def test_invalid_email(self, client):
        response = client.post("/api/v1/unsubscribe/", json={"email": "not-an-email"})

        assert response.status_code == 422


class TestUnsubscribeService:

    def test_counts(self, db_session, org, make_technician, make_cold_lead):
        make_technician(org.id, email="shared@example.com")
        make_cold_lead(email="shared@example.com")

        warm = unsubscribe(db_session, "  SHARED@example.com ", "warm")
        cold = unsubscribe(db_session, "shared@example.com", "cold")

        assert warm == {"email": "shared@example.com", "technicians": 1, "cold_leads": 0}
        assert cold == {"email": "shared@example.com", "technicians": 0, "cold_leads": 1}

    def test_upserts_single_entry(self, db_session):
        first = datetime(2026, 1, 1, tzinfo=timezone.utc)
        second = datetime(2026, 2, 1, tzinfo=timezone.utc)

        unsubscribe(db_session, "x@example.com", "cold", now=first)
        unsubscribe(db_session, "x@example.com", "warm", now=second)

        entry = db_session.query(OutreachUnsubscribe).one()
        assert entry.unsubscribe_type == "warm"
        assert entry.unsubscribed_at.replace(tzinfo=timezone.utc) == second

    def test_unknown_email_still_listed(self, db_session):
        result = unsubscribe(db_session, "nobody@example.com")

        assert result["technicians"] == 0
        assert result["cold_leads"] == 0
        assert db_session.query(OutreachUnsubscribe).count() == 1
