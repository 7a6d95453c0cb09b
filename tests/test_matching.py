"""
Tests for distance-based technician matching.

Tests cover:
- Haversine distance helpers
- Candidate filtering (trade, availability, organization, state, radius)
- Ranking by distance and candidate replacement
"""

from types import SimpleNamespace

import pytest

from app.models.job import JobCandidate
from app.services.geo import distance_between, haversine_meters, haversine_miles
from app.services.matching import find_matching_technicians, get_job_technicians

AUSTIN = (30.2672, -97.7431)


class TestHaversine:

    def test_one_degree_of_latitude(self):
        assert haversine_miles(30.0, -97.0, 31.0, -97.0) == pytest.approx(69.1, abs=0.1)
        assert haversine_meters(30.0, -97.0, 31.0, -97.0) == pytest.approx(111195, abs=5)

    def test_same_point(self):
        assert haversine_miles(*AUSTIN, *AUSTIN) == 0

    def test_austin_to_dallas(self):
        assert haversine_miles(*AUSTIN, 32.7767, -96.7970) == pytest.approx(181, abs=3)

    def test_distance_between_requires_coordinates(self):
        here = SimpleNamespace(lat=AUSTIN[0], lng=AUSTIN[1])
        nowhere = SimpleNamespace(lat=None, lng=AUSTIN[1])

        assert distance_between(here, here) == 0
        assert distance_between(here, nowhere) is None


class TestFindMatchingTechnicians:
    """Candidates stored in job_candidates"""

    def test_ranked_by_distance(self, db_session, org, make_job, make_technician):
        far = make_technician(org.id, lat=AUSTIN[0] + 0.2)
        near = make_technician(org.id, lat=AUSTIN[0] + 0.05)
        job = make_job(org.id)

        candidates = find_matching_technicians(db_session, job)

        assert [c.technician_id for c in candidates] == [near.id, far.id]
        assert [c.rank for c in candidates] == [1, 2]
        assert candidates[0].distance_miles == 3.5
        assert candidates[1].distance_miles == 13.8

    def test_outside_radius_excluded(self, db_session, org, make_job, make_technician):
        make_technician(org.id, lat=AUSTIN[0] + 0.5)
        job = make_job(org.id)

        assert find_matching_technicians(db_session, job) == []

    def test_custom_radius(self, db_session, org, make_job, make_technician):
        make_technician(org.id, lat=AUSTIN[0] + 0.5)
        job = make_job(org.id)

        assert len(find_matching_technicians(db_session, job, max_distance_m=60000)) == 1

    def test_trade_match_is_case_insensitive(self, db_session, org, make_job, make_technician):
        make_technician(org.id, trade="hvac")
        make_technician(org.id, trade="Plumbing")
        job = make_job(org.id)

        assert len(find_matching_technicians(db_session, job)) == 1

    def test_unavailable_and_unsubscribed_excluded(self, db_session, org, make_job, make_technician):
        from datetime import datetime, timezone

        make_technician(org.id, is_available=False)
        make_technician(org.id, unsubscribed_at=datetime.now(timezone.utc))
        job = make_job(org.id)

        assert find_matching_technicians(db_session, job) == []

    def test_organization_and_public_pool(self, db_session, org, public_pool, make_job, make_technician, user_factory, org_factory):
        other = org_factory(user_factory("other@example.com"), name="Other Co")
        own = make_technician(org.id)
        pooled = make_technician(public_pool.id)
        make_technician(other.id)
        job = make_job(org.id)

        matched = {c.technician_id for c in find_matching_technicians(db_session, job)}

        assert matched == {own.id, pooled.id}

    def test_state_restriction(self, db_session, org, make_job, make_technician):
        in_state = make_technician(org.id)
        no_state = make_technician(org.id, state=None)
        make_technician(org.id, state="OK")
        job = make_job(org.id)

        matched = {c.technician_id for c in find_matching_technicians(db_session, job)}
        unrestricted = find_matching_technicians(db_session, job, restrict_state=False)

        assert matched == {in_state.id, no_state.id}
        assert len(unrestricted) == 3

    def test_ties_broken_by_id(self, db_session, org, make_job, make_technician):
        first = make_technician(org.id)
        second = make_technician(org.id)
        job = make_job(org.id)

        candidates = find_matching_technicians(db_session, job)

        assert [c.technician_id for c in candidates] == sorted([first.id, second.id], key=str)

    def test_job_without_coordinates(self, db_session, org, make_job, make_technician):
        make_technician(org.id)
        job = make_job(org.id, lat=None, lng=None)

        assert find_matching_technicians(db_session, job) == []

    def test_previous_candidates_replaced(self, db_session, org, make_job, make_technician):
        make_technician(org.id)
        job = make_job(org.id)

        find_matching_technicians(db_session, job)
        find_matching_technicians(db_session, job)
        db_session.commit()

        assert db_session.query(JobCandidate).filter(JobCandidate.job_id == job.id).count() == 1


class TestJobTechnicians:

    def test_undispatched_job(self, db_session, org, make_job):
        assert get_job_technicians(db_session, make_job(org.id)) == []
