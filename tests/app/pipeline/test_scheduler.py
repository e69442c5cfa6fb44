"""Tests for app.pipeline.scheduler — sequence tables and persistence."""
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock

from app.errors import PersistenceError
from app.pipeline.scheduler import (
    FOLLOWUP_SEQUENCES, FollowupScheduler, build_schedule, resolve_sequence, sequence_length,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestBuildSchedule:

    @pytest.mark.parametrize('name', sorted(FOLLOWUP_SEQUENCES))
    def test_numbers_and_times_are_ordered(self, name):
        plan = build_schedule(name, NOW)
        assert [p.sequence_number for p in plan] == list(range(1, len(plan) + 1))
        times = [p.scheduled_for for p in plan]
        assert times == sorted(times)
        assert all(t >= NOW for t in times)

    def test_immediate_sequence(self):
        plan = build_schedule('immediate', NOW)
        assert [(p.email_type, p.scheduled_for - NOW) for p in plan] == [
            ('welcome', timedelta(0)),
            ('demo_invite', timedelta(hours=4)),
            ('check_in', timedelta(hours=24)),
        ]

    def test_nurture_spans_three_weeks(self):
        plan = build_schedule('nurture', NOW)
        assert [p.email_type for p in plan] == ['welcome', 'value_prop', 'case_study', 'demo_invite', 'final']
        assert plan[-1].scheduled_for - NOW == timedelta(hours=504)

    def test_unknown_sequence_falls_back_to_minimal(self, caplog):
        plan = build_schedule('aggressive', NOW)
        assert [(p.email_type, p.scheduled_for - NOW) for p in plan] == [('welcome', timedelta(hours=1))]
        assert resolve_sequence('aggressive') == 'minimal'
        assert 'aggressive' in caplog.text

    def test_sequence_length(self):
        assert sequence_length('standard') == 3
        assert sequence_length('bogus') == 1


class TestFollowupScheduler:

    def test_persists_pending_items(self, store, make_submission):
        sub = make_submission()
        result = FollowupScheduler(store).schedule(sub['id'], None, 'standard', now=NOW)

        assert result.success is True
        assert result.scheduled == 3
        rows = store.list_followups(sub['id'])
        assert [r['email_type'] for r in rows] == ['welcome', 'value_prop', 'demo_invite']
        assert {r['status'] for r in rows} == {'pending'}

    def test_second_schedule_does_not_double(self, store, make_submission):
        sub = make_submission()
        scheduler = FollowupScheduler(store)
        scheduler.schedule(sub['id'], None, 'standard', now=NOW)
        again = scheduler.schedule(sub['id'], None, 'nurture', now=NOW)

        assert again.success is True
        assert again.scheduled == 3
        assert len(store.list_followups(sub['id'])) == 3

    def test_store_failure_reports_error(self):
        store = MagicMock()
        store.list_followups.return_value = []
        store.insert_followups.side_effect = PersistenceError('Failed to schedule follow-ups')

        result = FollowupScheduler(store).schedule('sub-1', 'score-1', 'minimal', now=NOW)
        assert result.success is False
        assert 'schedule' in result.error
