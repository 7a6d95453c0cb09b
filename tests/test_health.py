"""
Tests for health and metrics endpoints.
"""


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root(client):
    assert client.get("/").json()["message"] == "Field Dispatch API"


def test_detailed_reports_integrations(client):
    response = client.get("/health/detailed")

    data = response.json()
    assert data["checks"]["database"]["status"] == "healthy"
    assert data["checks"]["integrations"] == {
        "sendgrid": False,
        "instantly": False,
        "hunter": False,
        "google_maps": False,
        "openai": False,
    }


def test_metrics(client, org, make_job, make_technician):
    make_job(org.id)
    make_technician(org.id)
    make_technician(org.id, is_available=False)

    metrics = client.get("/metrics").json()["metrics"]

    assert metrics["total_jobs"] == 1
    assert metrics["jobs_by_status"]["matching"] == 1
    assert metrics["available_technicians"] == 1
    assert metrics["breached_sla_timers"] == 0
