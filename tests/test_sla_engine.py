"""
Tests for the SLA engine.

Tests cover:
- Default targets per urgency
- Timer initialization and stage progression
- Breach and warning detection
- Status, time remaining and display helpers
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from app.core.timeutils import ensure_utc
from app.models.job import Job, JobUrgency
from app.models.sla import SLAAlert, SLAAlertType, SLAStage, SLATimer
from app.services.sla_engine import (
    STAGE_ORDER,
    calculate_sla_status,
    check_sla_timers,
    complete_sla_stage,
    format_minutes,
    get_active_timer,
    get_default_sla,
    get_time_remaining,
    initialize_sla_timers,
)

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


def timer(stage, target=60, started=None, completed=None, breached=False):
    return SimpleNamespace(
        stage=stage, target_minutes=target, started_at=started, completed_at=completed, breached=breached
    )


class TestDefaults:

    def test_emergency_targets(self):
        assert get_default_sla(JobUrgency.EMERGENCY) == {
            "dispatch": 15, "assignment": 30, "arrival": 60, "completion": 240
        }

    def test_string_urgency(self):
        assert get_default_sla("flexible")["completion"] == 2880

    def test_unknown_urgency_uses_within_week(self):
        assert get_default_sla("someday") == get_default_sla(JobUrgency.WITHIN_WEEK)

    def test_defaults_are_copies(self):
        targets = get_default_sla("same_day")
        targets["dispatch"] = 1

        assert get_default_sla("same_day")["dispatch"] == 30


class TestTimerLifecycle:
    """Initialization and stage completion against the database"""

    def test_initialize_starts_dispatch_only(self, db_session, org, make_job):
        job = make_job(org.id, urgency=JobUrgency.NEXT_DAY)

        timers = initialize_sla_timers(db_session, job, now=NOW)

        assert [t.stage for t in timers] == STAGE_ORDER
        assert [t.target_minutes for t in timers] == [60, 120, 240, 720]
        assert timers[0].started_at == NOW
        assert all(t.started_at is None for t in timers[1:])

    def test_initialize_with_custom_config(self, db_session, org, make_job):
        job = make_job(org.id)
        config = {"dispatch": 5, "assignment": 10, "arrival": 15, "completion": 20}

        timers = initialize_sla_timers(db_session, job, config=config, now=NOW)

        assert [t.target_minutes for t in timers] == [5, 10, 15, 20]

    def test_complete_stage_starts_next(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        later = NOW + timedelta(minutes=10)

        completed = complete_sla_stage(db_session, job.id, SLAStage.DISPATCH, now=later)

        assert completed.stage == SLAStage.DISPATCH
        assert completed.completed_at == later
        assignment = db_session.query(SLATimer).filter(
            SLATimer.job_id == job.id, SLATimer.stage == SLAStage.ASSIGNMENT
        ).one()
        assert assignment.started_at == later

    def test_complete_stage_twice(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        complete_sla_stage(db_session, job.id, SLAStage.DISPATCH, now=NOW)

        assert complete_sla_stage(db_session, job.id, SLAStage.DISPATCH, now=NOW) is None

    def test_complete_unstarted_stage_marks_it_started(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)

        completed = complete_sla_stage(db_session, job.id, SLAStage.ARRIVAL, now=NOW)

        assert completed.started_at == NOW
        assert completed.completed_at == NOW

    def test_job_without_timers(self, db_session, org, make_job):
        job = make_job(org.id)

        assert complete_sla_stage(db_session, job.id, SLAStage.DISPATCH) is None


class TestCheckTimers:
    """Periodic breach and warning scan"""

    def test_breach_recorded(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        db_session.commit()

        result = check_sla_timers(db_session, now=NOW + timedelta(minutes=30))

        assert result["checked"] == 1
        assert result["breaches"] == 1
        assert result["alerts"] == 0
        assert result["details"]["breaches"][0]["stage"] == "dispatch"

        alert = db_session.query(SLAAlert).one()
        assert alert.alert_type == SLAAlertType.BREACH
        assert alert.message == "SLA breached for dispatch stage. Exceeded 30 minute target."
        assert db_session.query(Job).filter(Job.id == job.id).one().sla_breached is True

    def test_breached_timer_not_checked_again(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        db_session.commit()
        check_sla_timers(db_session, now=NOW + timedelta(minutes=45))

        result = check_sla_timers(db_session, now=NOW + timedelta(minutes=50))

        assert result["checked"] == 0
        assert db_session.query(SLAAlert).count() == 1

    def test_warning_recorded_once(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        db_session.commit()

        first = check_sla_timers(db_session, now=NOW + timedelta(minutes=24))
        second = check_sla_timers(db_session, now=NOW + timedelta(minutes=26))

        assert first["alerts"] == 1
        assert first["details"]["alerts"][0]["remaining_minutes"] == 6
        assert second["alerts"] == 0
        alert = db_session.query(SLAAlert).one()
        assert alert.alert_type == SLAAlertType.WARNING
        assert alert.message == "SLA warning for dispatch stage. Only 6 minutes remaining."

    def test_warning_rounds_half_minutes_up(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        db_session.commit()

        result = check_sla_timers(db_session, now=NOW + timedelta(minutes=25, seconds=30))

        assert result["details"]["alerts"][0]["remaining_minutes"] == 5
        alert = db_session.query(SLAAlert).one()
        assert alert.message == "SLA warning for dispatch stage. Only 5 minutes remaining."

    def test_on_time_timer_no_alerts(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        db_session.commit()

        result = check_sla_timers(db_session, now=NOW + timedelta(minutes=5))

        assert result == {"checked": 1, "alerts": 0, "breaches": 0, "details": {"alerts": [], "breaches": []}}

    def test_completed_and_unstarted_timers_skipped(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        complete_sla_stage(db_session, job.id, SLAStage.DISPATCH, now=NOW)
        db_session.commit()

        result = check_sla_timers(db_session, now=NOW + timedelta(minutes=5))

        # Only the assignment timer is running
        assert result["checked"] == 1

    def test_started_at_read_back_from_database(self, db_session, org, make_job):
        job = make_job(org.id)
        initialize_sla_timers(db_session, job, now=NOW)
        db_session.commit()
        db_session.expire_all()

        stored = db_session.query(SLATimer).filter(SLATimer.stage == SLAStage.DISPATCH).one()

        assert ensure_utc(stored.started_at) == NOW


class TestStatusHelpers:

    def test_active_timer(self):
        timers = [
            timer(SLAStage.ASSIGNMENT, started=NOW),
            timer(SLAStage.DISPATCH, started=NOW, completed=NOW),
            timer(SLAStage.ARRIVAL),
        ]

        assert get_active_timer(timers).stage == SLAStage.ASSIGNMENT

    def test_no_active_timer(self):
        assert get_active_timer([timer(SLAStage.DISPATCH, started=NOW, breached=True)]) is None

    def test_time_remaining(self):
        running = timer(SLAStage.DISPATCH, target=30, started=NOW)

        assert get_time_remaining(running, now=NOW + timedelta(minutes=10)) == 20
        assert get_time_remaining(running, now=NOW + timedelta(minutes=90)) == 0

    def test_time_remaining_of_finished_timers(self):
        assert get_time_remaining(timer(SLAStage.DISPATCH, started=NOW, completed=NOW)) == 0
        assert get_time_remaining(timer(SLAStage.DISPATCH, started=NOW, breached=True)) == 0
        assert get_time_remaining(timer(SLAStage.DISPATCH)) == 0

    def test_status_no_timers(self):
        assert calculate_sla_status([]) == "no-sla"

    def test_status_breached(self):
        timers = [timer(SLAStage.DISPATCH, started=NOW, breached=True)]

        assert calculate_sla_status(timers, now=NOW) == "breached"

    def test_status_completed(self):
        timers = [timer(stage, started=NOW, completed=NOW) for stage in STAGE_ORDER]

        assert calculate_sla_status(timers, now=NOW) == "completed"

    def test_status_warning_and_on_time(self):
        timers = [timer(SLAStage.DISPATCH, target=60, started=NOW), timer(SLAStage.ASSIGNMENT)]

        assert calculate_sla_status(timers, now=NOW + timedelta(minutes=10)) == "on-time"
        assert calculate_sla_status(timers, now=NOW + timedelta(minutes=50)) == "warning"

    def test_exactly_quarter_remaining_is_on_time(self):
        timers = [timer(SLAStage.DISPATCH, target=60, started=NOW)]

        assert calculate_sla_status(timers, now=NOW + timedelta(minutes=45)) == "on-time"

    def test_format_minutes(self):
        assert format_minutes(45) == "45m"
        assert format_minutes(120) == "2h"
        assert format_minutes(150) == "2h 30m"
        assert format_minutes(0) == "0m"

    def test_format_minutes_rounds_halves_up(self):
        assert format_minutes(2.5) == "3m"
        assert format_minutes(150.5) == "2h 31m"
        assert format_minutes(59.5) == "60m"
