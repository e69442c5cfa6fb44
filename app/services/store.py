"""
Persistence for the lead pipeline — submissions, scores, follow-ups,
interactions and chat history.

Every method opens its own session from the injected factory, commits or
rolls back, and closes it. Reads return plain dicts so callers never hold
detached ORM rows. SQLAlchemy failures surface as PersistenceError.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.database import get_session
from app.errors import PersistenceError
from app.models.agent_interaction import AgentInteraction
from app.models.contact_submission import ContactSubmission
from app.models.conversation import ConversationMessage
from app.models.followup import FollowupItem
from app.models.lead_score import LeadScore

logger = logging.getLogger('services.store')


def utcnow():
    return datetime.now(timezone.utc)


class LeadStore:

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or get_session

    def _fail(self, session, action):
        session.rollback()
        logger.error("Store failure while %s", action, exc_info=True)
        return PersistenceError(f"Failed to {action}")

    # ── Contact submissions ──────────────────────────────────────────────

    def create_submission(self, full_name, email, phone='', business_name='',
                          website=None, message=None) -> Dict:
        session = self.session_factory()
        try:
            row = ContactSubmission(
                full_name=full_name or '',
                email=email,
                phone=phone or '',
                business_name=business_name or '',
                website=website or None,
                message=message or None,
                processing_status='pending',
            )
            session.add(row)
            session.commit()
            return row.to_dict()
        except SQLAlchemyError as e:
            raise self._fail(session, 'create submission') from e
        finally:
            session.close()

    def get_submission(self, submission_id) -> Optional[Dict]:
        session = self.session_factory()
        try:
            row = session.get(ContactSubmission, submission_id)
            return row.to_dict() if row else None
        except SQLAlchemyError as e:
            raise self._fail(session, f'load submission {submission_id}') from e
        finally:
            session.close()

    def set_submission_status(self, submission_id, status, processed_at=None) -> bool:
        """Unconditional status write. Returns False if the submission does not exist."""
        session = self.session_factory()
        try:
            values = {'processing_status': status}
            if processed_at is not None:
                values['processed_at'] = processed_at
            result = session.execute(
                update(ContactSubmission)
                .where(ContactSubmission.id == submission_id)
                .values(**values)
            )
            session.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            raise self._fail(session, f'set submission {submission_id} to {status}') from e
        finally:
            session.close()

    def claim_submission(self, submission_id, from_statuses=('pending', 'failed')) -> bool:
        """Conditional move to 'processing'. False means another worker already has it."""
        session = self.session_factory()
        try:
            result = session.execute(
                update(ContactSubmission)
                .where(
                    ContactSubmission.id == submission_id,
                    ContactSubmission.processing_status.in_(from_statuses),
                )
                .values(processing_status='processing')
            )
            session.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            raise self._fail(session, f'claim submission {submission_id}') from e
        finally:
            session.close()

    def list_retry_candidates(self, since, limit, statuses=('pending', 'failed')) -> List[Dict]:
        session = self.session_factory()
        try:
            rows = session.scalars(
                select(ContactSubmission)
                .where(
                    ContactSubmission.processing_status.in_(statuses),
                    ContactSubmission.created_at >= since,
                )
                .order_by(ContactSubmission.created_at.asc())
                .limit(limit)
            ).all()
            return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            raise self._fail(session, 'list retry candidates') from e
        finally:
            session.close()

    # ── Lead scores ──────────────────────────────────────────────────────

    def get_lead_score(self, lead_score_id) -> Optional[Dict]:
        session = self.session_factory()
        try:
            row = session.get(LeadScore, lead_score_id)
            return row.to_dict() if row else None
        except SQLAlchemyError as e:
            raise self._fail(session, f'load lead score {lead_score_id}') from e
        finally:
            session.close()

    def get_lead_score_for_submission(self, submission_id) -> Optional[Dict]:
        session = self.session_factory()
        try:
            row = session.scalars(
                select(LeadScore).where(LeadScore.contact_submission_id == submission_id)
            ).first()
            return row.to_dict() if row else None
        except SQLAlchemyError as e:
            raise self._fail(session, f'load lead score for {submission_id}') from e
        finally:
            session.close()

    def insert_lead_score(self, submission_id, fields: Dict) -> Tuple[Dict, bool]:
        """
        Insert the one score for a submission.

        Returns (score, created). A unique-constraint hit means a retried
        request already scored this lead; the existing row is returned with
        created=False.
        """
        session = self.session_factory()
        try:
            row = LeadScore(contact_submission_id=submission_id, **fields)
            session.add(row)
            session.commit()
            return row.to_dict(), True
        except IntegrityError:
            session.rollback()
            existing = session.scalars(
                select(LeadScore).where(LeadScore.contact_submission_id == submission_id)
            ).first()
            if existing is None:
                logger.error("Lead score insert for %s violated a constraint", submission_id, exc_info=True)
                raise PersistenceError(f"Failed to store lead score for {submission_id}")
            logger.info("Lead %s already scored, keeping existing score %s", submission_id, existing.id)
            return existing.to_dict(), False
        except SQLAlchemyError as e:
            raise self._fail(session, f'store lead score for {submission_id}') from e
        finally:
            session.close()

    # ── Follow-up queue ──────────────────────────────────────────────────

    def insert_followups(self, submission_id, lead_score_id, planned) -> List[Dict]:
        """Write a whole sequence in one transaction: all rows or none."""
        session = self.session_factory()
        try:
            rows = [
                FollowupItem(
                    contact_submission_id=submission_id,
                    lead_score_id=lead_score_id,
                    sequence_number=item.sequence_number,
                    email_type=item.email_type,
                    scheduled_for=item.scheduled_for,
                    status='pending',
                )
                for item in planned
            ]
            session.add_all(rows)
            session.commit()
            return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            raise self._fail(session, f'schedule follow-ups for {submission_id}') from e
        finally:
            session.close()

    def list_followups(self, submission_id) -> List[Dict]:
        session = self.session_factory()
        try:
            rows = session.scalars(
                select(FollowupItem)
                .where(FollowupItem.contact_submission_id == submission_id)
                .order_by(FollowupItem.sequence_number.asc())
            ).all()
            return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            raise self._fail(session, f'list follow-ups for {submission_id}') from e
        finally:
            session.close()

    def get_due_followups(self, now, limit) -> List[Dict]:
        """Pending items due at or before now, oldest first."""
        session = self.session_factory()
        try:
            rows = session.scalars(
                select(FollowupItem)
                .where(
                    FollowupItem.status == 'pending',
                    FollowupItem.scheduled_for <= now,
                )
                .order_by(FollowupItem.scheduled_for.asc())
                .limit(limit)
            ).all()
            return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            raise self._fail(session, 'query due follow-ups') from e
        finally:
            session.close()

    def claim_followup(self, followup_id, now=None) -> bool:
        """pending → processing, only if still pending. Exactly one caller wins."""
        session = self.session_factory()
        try:
            result = session.execute(
                update(FollowupItem)
                .where(FollowupItem.id == followup_id, FollowupItem.status == 'pending')
                .values(status='processing', claimed_at=now or utcnow())
            )
            session.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            raise self._fail(session, f'claim follow-up {followup_id}') from e
        finally:
            session.close()

    def finish_followup(self, followup_id, status, email_subject=None, email_body=None,
                        error_message=None, sent_at=None) -> bool:
        """processing → sent|failed. Rows that left 'processing' meanwhile are untouched."""
        session = self.session_factory()
        try:
            result = session.execute(
                update(FollowupItem)
                .where(FollowupItem.id == followup_id, FollowupItem.status == 'processing')
                .values(
                    status=status,
                    email_subject=email_subject,
                    email_body=email_body,
                    error_message=error_message,
                    sent_at=sent_at,
                )
            )
            session.commit()
            if result.rowcount != 1:
                logger.warning("Follow-up %s was no longer processing when finishing as %s", followup_id, status)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            raise self._fail(session, f'finish follow-up {followup_id}') from e
        finally:
            session.close()

    def expire_stale_claims(self, older_than) -> int:
        """Claims older than the cutoff become failed, never pending again."""
        session = self.session_factory()
        try:
            result = session.execute(
                update(FollowupItem)
                .where(FollowupItem.status == 'processing', FollowupItem.claimed_at < older_than)
                .values(status='failed', error_message='Claim expired before completion')
            )
            session.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            raise self._fail(session, 'expire stale follow-up claims') from e
        finally:
            session.close()

    def cancel_followups(self, submission_id) -> int:
        """Cancel every still-pending item of a lead (e.g. unsubscribe)."""
        session = self.session_factory()
        try:
            result = session.execute(
                update(FollowupItem)
                .where(
                    FollowupItem.contact_submission_id == submission_id,
                    FollowupItem.status == 'pending',
                )
                .values(status='cancelled')
            )
            session.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            raise self._fail(session, f'cancel follow-ups for {submission_id}') from e
        finally:
            session.close()

    # ── Interaction ledger ───────────────────────────────────────────────

    def insert_interaction(self, **fields) -> Dict:
        session = self.session_factory()
        try:
            row = AgentInteraction(**fields)
            session.add(row)
            session.commit()
            return row.to_dict()
        except SQLAlchemyError as e:
            raise self._fail(session, 'record interaction') from e
        finally:
            session.close()

    def list_interactions(self, start=None, end=None, interaction_type=None, limit=500) -> List[Dict]:
        session = self.session_factory()
        try:
            query = select(AgentInteraction)
            if start is not None:
                query = query.where(AgentInteraction.created_at >= start)
            if end is not None:
                query = query.where(AgentInteraction.created_at <= end)
            if interaction_type:
                query = query.where(AgentInteraction.interaction_type == interaction_type)
            rows = session.scalars(
                query.order_by(AgentInteraction.created_at.desc(), AgentInteraction.id.desc()).limit(limit)
            ).all()
            return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            raise self._fail(session, 'list interactions') from e
        finally:
            session.close()

    # ── Chat history ─────────────────────────────────────────────────────

    def get_conversation(self, session_id, limit=10) -> List[Dict]:
        session = self.session_factory()
        try:
            rows = session.scalars(
                select(ConversationMessage)
                .where(ConversationMessage.session_id == session_id)
                .order_by(ConversationMessage.created_at.desc(), ConversationMessage.id.desc())
                .limit(limit)
            ).all()
            return [{'role': row.role, 'content': row.content} for row in reversed(rows)]
        except SQLAlchemyError as e:
            raise self._fail(session, f'load conversation {session_id}') from e
        finally:
            session.close()

    def append_conversation(self, session_id, user_message, assistant_message, model, tokens_used):
        session = self.session_factory()
        try:
            session.add_all([
                ConversationMessage(session_id=session_id, role='user', content=user_message),
                ConversationMessage(
                    session_id=session_id, role='assistant', content=assistant_message,
                    model_used=model, tokens_used=tokens_used,
                ),
            ])
            session.commit()
        except SQLAlchemyError as e:
            raise self._fail(session, f'store conversation {session_id}') from e
        finally:
            session.close()
