"""Tests for the lead pipeline ORM models — defaults, to_dict, constraints."""
import pytest
from datetime import datetime, timezone
from sqlalchemy.exc import IntegrityError

from app.models.contact_submission import ContactSubmission
from app.models.followup import FollowupItem
from app.models.lead_score import LeadScore


@pytest.fixture
def session(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


def _submission(session):
    sub = ContactSubmission(full_name='Jane Doe', email='jane@acme.com')
    session.add(sub)
    session.flush()
    return sub


class TestContactSubmission:

    def test_defaults(self, session):
        sub = _submission(session)
        assert len(sub.id) == 36
        assert sub.processing_status == 'pending'

    def test_to_dict_fills_blank_strings(self, session):
        sub = ContactSubmission(email='x@y.com')
        session.add(sub)
        session.flush()
        data = sub.to_dict()
        assert data['phone'] == ''
        assert data['business_name'] == ''
        assert data['website'] is None
        assert data['processed_at'] is None


class TestLeadScore:

    def test_one_score_per_submission(self, session):
        sub = _submission(session)
        session.add(LeadScore(contact_submission_id=sub.id, score=80, category='hot'))
        session.flush()
        session.add(LeadScore(contact_submission_id=sub.id, score=20, category='cold'))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_to_dict_defaults(self, session):
        sub = _submission(session)
        score = LeadScore(contact_submission_id=sub.id, score=55, category='warm')
        session.add(score)
        session.flush()
        data = score.to_dict()
        assert data['recommended_followup_sequence'] == 'standard'
        assert data['budget_indicator'] == 'unknown'
        assert data['decision_maker_likelihood'] == 50
        assert data['ai_analysis'] == {}


class TestFollowupItem:

    def _item(self, sub_id, seq):
        return FollowupItem(
            contact_submission_id=sub_id, sequence_number=seq, email_type='welcome',
            scheduled_for=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )

    def test_sequence_numbers_unique_per_lead(self, session):
        sub = _submission(session)
        session.add(self._item(sub.id, 1))
        session.flush()
        session.add(self._item(sub.id, 1))
        with pytest.raises(IntegrityError):
            session.flush()

    def test_to_dict(self, session):
        sub = _submission(session)
        item = self._item(sub.id, 1)
        session.add(item)
        session.flush()
        data = item.to_dict()
        assert data['status'] == 'pending'
        assert data['scheduled_for'].startswith('2026-01-01')
        assert data['sent_at'] is None
