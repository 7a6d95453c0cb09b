"""
Tests for compliance policy endpoints.

Tests cover:
- Policy creation and requirement code validation
- Listing and retrieval scoped to the organization
- Technician scores against a policy
"""

from datetime import datetime, timedelta, timezone

from app.models.credential import ContractorInsurance, InsuranceType


POLICY = {
    "name": "Commercial HVAC",
    "description": "Office buildings downtown",
    "items": [
        {"requirement_code": "COI_VALID", "weight": 60, "min_valid_days": 30},
        {"requirement_code": "CERTIFICATION:EPA 608", "required": False, "weight": 40},
    ],
}


class TestPolicyEndpoints:

    def test_create_policy(self, client, auth_headers, org):
        response = client.post("/api/v1/policies/", json=POLICY, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["org_id"] == str(org.id)
        assert data["is_active"] is True
        assert data["job_id"] is None
        codes = {item["requirement_code"]: item for item in data["items"]}
        assert codes["COI_VALID"]["min_valid_days"] == 30
        assert codes["CERTIFICATION:EPA 608"]["required"] is False

    def test_invalid_requirement_code(self, client, auth_headers, org):
        body = {"name": "Bad", "items": [{"requirement_code": "DRUG_TEST"}]}

        response = client.post("/api/v1/policies/", json=body, headers=auth_headers)

        assert response.status_code == 422

    def test_weight_bounds(self, client, auth_headers, org):
        body = {"name": "Bad", "items": [{"requirement_code": "COI_VALID", "weight": 0}]}

        response = client.post("/api/v1/policies/", json=body, headers=auth_headers)

        assert response.status_code == 422

    def test_policy_needs_items(self, client, auth_headers, org):
        response = client.post("/api/v1/policies/", json={"name": "Empty", "items": []}, headers=auth_headers)

        assert response.status_code == 422

    def test_list_and_get(self, client, auth_headers, other_org_headers, org):
        created = client.post("/api/v1/policies/", json=POLICY, headers=auth_headers).json()

        listing = client.get("/api/v1/policies/", headers=auth_headers)
        single = client.get(f"/api/v1/policies/{created['id']}", headers=auth_headers)
        foreign = client.get(f"/api/v1/policies/{created['id']}", headers=other_org_headers)

        assert [p["id"] for p in listing.json()] == [created["id"]]
        assert single.json()["name"] == "Commercial HVAC"
        assert foreign.status_code == 404
        assert client.get("/api/v1/policies/", headers=other_org_headers).json() == []

    def test_scores(self, client, db_session, auth_headers, org, make_technician):
        created = client.post("/api/v1/policies/", json=POLICY, headers=auth_headers).json()
        covered = make_technician(org.id, full_name="Covered")
        make_technician(org.id, full_name="Uncovered")
        db_session.add(ContractorInsurance(
            technician_id=covered.id,
            insurance_type=InsuranceType.GENERAL_LIABILITY,
            expiration_date=datetime.now(timezone.utc) + timedelta(days=200),
        ))
        db_session.commit()

        response = client.get(f"/api/v1/policies/{created['id']}/scores", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [entry["technician_name"] for entry in data] == ["Covered", "Uncovered"]
        assert data[0] == {
            "technician_id": str(covered.id),
            "technician_name": "Covered",
            "meets_all": True,
            "score": 60,
            "failed": ["CERTIFICATION:EPA 608"],
        }
        assert data[1]["meets_all"] is False
        assert data[1]["score"] == 0

    def test_scores_unknown_policy(self, client, auth_headers, org):
        response = client.get("/api/v1/policies/00000000-0000-0000-0000-00000000abcd/scores", headers=auth_headers)

        assert response.status_code == 404
