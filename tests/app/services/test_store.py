"""Tests for app.services.store — LeadStore against in-memory SQLite."""
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError

from app.errors import PersistenceError
from app.pipeline.scheduler import build_schedule
from app.services.store import LeadStore


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

SCORE_FIELDS = dict(
    score=85,
    category='hot',
    reasoning='Established business',
    budget_indicator='high',
    urgency_indicator='high',
    decision_maker_likelihood=80,
    industry_fit_score=75,
    recommended_followup_sequence='immediate',
    ai_analysis={'key_talking_points': ['ROI']},
)


@pytest.fixture
def submission(make_submission):
    return make_submission()


@pytest.fixture
def scored(store, submission):
    score, _ = store.insert_lead_score(submission['id'], dict(SCORE_FIELDS))
    return submission, score


class TestSubmissions:

    def test_create_and_get(self, store, submission):
        loaded = store.get_submission(submission['id'])
        assert loaded['email'] == 'jane@acme.com'
        assert loaded['processing_status'] == 'pending'

    def test_get_missing_returns_none(self, store):
        assert store.get_submission('nope') is None

    def test_set_status_on_missing_returns_false(self, store):
        assert store.set_submission_status('nope', 'processing') is False

    def test_claim_is_conditional(self, store, submission):
        assert store.claim_submission(submission['id']) is True
        assert store.claim_submission(submission['id']) is False
        assert store.get_submission(submission['id'])['processing_status'] == 'processing'

    def test_retry_candidates_only_pending_or_failed(self, store, make_submission):
        a = make_submission(email='a@x.com')
        b = make_submission(email='b@x.com')
        c = make_submission(email='c@x.com')
        store.set_submission_status(b['id'], 'failed')
        store.set_submission_status(c['id'], 'completed')

        since = datetime.now(timezone.utc) - timedelta(hours=1)
        ids = {row['id'] for row in store.list_retry_candidates(since, 10)}
        assert ids == {a['id'], b['id']}


class TestLeadScores:

    def test_insert_then_duplicate_returns_existing(self, store, submission):
        first, created = store.insert_lead_score(submission['id'], dict(SCORE_FIELDS))
        assert created is True

        second, created_again = store.insert_lead_score(
            submission['id'], dict(SCORE_FIELDS, score=10, category='unqualified'),
        )
        assert created_again is False
        assert second['id'] == first['id']
        assert second['score'] == 85

    def test_lookup_by_submission(self, store, scored):
        submission, score = scored
        assert store.get_lead_score_for_submission(submission['id'])['id'] == score['id']
        assert store.get_lead_score(score['id'])['ai_analysis'] == {'key_talking_points': ['ROI']}


class TestFollowups:

    def test_insert_writes_whole_sequence(self, store, scored):
        submission, score = scored
        rows = store.insert_followups(submission['id'], score['id'], build_schedule('nurture', NOW))
        assert [r['sequence_number'] for r in rows] == [1, 2, 3, 4, 5]
        assert all(r['status'] == 'pending' for r in rows)

    def test_insert_is_all_or_nothing(self, store, scored):
        submission, score = scored
        plan = build_schedule('standard', NOW)
        plan[2].sequence_number = 1  # duplicate (submission, sequence_number)

        with pytest.raises(PersistenceError):
            store.insert_followups(submission['id'], score['id'], plan)
        assert store.list_followups(submission['id']) == []

    def test_due_query_excludes_future_and_non_pending(self, store, scored):
        submission, score = scored
        store.insert_followups(submission['id'], score['id'], build_schedule('immediate', NOW))
        store.cancel_followups(submission['id'])
        assert store.get_due_followups(NOW + timedelta(days=2), 10) == []

        other = store.create_submission('Bob', 'bob@x.com')
        other_rows = store.insert_followups(other['id'], None, build_schedule('immediate', NOW))
        due = store.get_due_followups(NOW + timedelta(hours=5), 10)
        assert [d['email_type'] for d in due] == ['welcome', 'demo_invite']
        assert {d['id'] for d in due} <= {r['id'] for r in other_rows}

    def test_claim_exactly_once(self, store, scored):
        submission, score = scored
        item = store.insert_followups(submission['id'], score['id'], build_schedule('minimal', NOW))[0]

        assert store.claim_followup(item['id'], NOW) is True
        assert store.claim_followup(item['id'], NOW) is False

    def test_finish_only_from_processing(self, store, scored):
        submission, score = scored
        item = store.insert_followups(submission['id'], score['id'], build_schedule('minimal', NOW))[0]

        assert store.finish_followup(item['id'], 'sent') is False  # never claimed
        store.claim_followup(item['id'], NOW)
        assert store.finish_followup(item['id'], 'sent', email_subject='Hi', email_body='Body', sent_at=NOW)
        row = store.list_followups(submission['id'])[0]
        assert row['status'] == 'sent'
        assert row['email_subject'] == 'Hi'

    def test_stale_claims_fail_never_return_to_pending(self, store, scored):
        submission, score = scored
        item = store.insert_followups(submission['id'], score['id'], build_schedule('minimal', NOW))[0]
        store.claim_followup(item['id'], NOW - timedelta(hours=1))

        assert store.expire_stale_claims(NOW - timedelta(minutes=15)) == 1
        row = store.list_followups(submission['id'])[0]
        assert row['status'] == 'failed'
        assert 'expired' in row['error_message']
        assert store.get_due_followups(NOW + timedelta(days=1), 10) == []

    def test_cancel_leaves_sent_items(self, store, scored):
        submission, score = scored
        rows = store.insert_followups(submission['id'], score['id'], build_schedule('standard', NOW))
        store.claim_followup(rows[0]['id'], NOW)
        store.finish_followup(rows[0]['id'], 'sent', sent_at=NOW)

        assert store.cancel_followups(submission['id']) == 2
        statuses = [r['status'] for r in store.list_followups(submission['id'])]
        assert statuses == ['sent', 'cancelled', 'cancelled']


class TestInteractionsAndConversation:

    def test_interactions_filter_by_type(self, store):
        store.insert_interaction(interaction_type='chat', model_used='gpt-4o-mini', success=True)
        store.insert_interaction(interaction_type='lead_processing', model_used='gpt-4o', success=False)

        rows = store.list_interactions(interaction_type='lead_processing')
        assert len(rows) == 1
        assert rows[0]['success'] is False

    def test_conversation_returns_latest_in_order(self, store):
        for i in range(3):
            store.append_conversation('sess-1', f'q{i}', f'a{i}', 'gpt-4o-mini', 10)

        history = store.get_conversation('sess-1', limit=4)
        assert [m['content'] for m in history] == ['q1', 'a1', 'q2', 'a2']
        assert history[1]['role'] == 'assistant'


class TestFailures:

    def test_sqlalchemy_error_becomes_persistence_error(self):
        session = MagicMock()
        session.get.side_effect = OperationalError('SELECT', {}, Exception('db gone'))
        store = LeadStore(lambda: session)

        with pytest.raises(PersistenceError):
            store.get_submission('x')
        session.rollback.assert_called_once()
        session.close.assert_called_once()
