"""
FollowupItem model — one scheduled email within a lead's sequence.

Status flow: pending → processing (executor claim) → sent | failed.
cancelled is set by an external actor and is terminal.
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.sql import func

from app.database import Base


class FollowupItem(Base):
    __tablename__ = 'followup_queue'
    __table_args__ = (
        UniqueConstraint('contact_submission_id', 'sequence_number', name='uq_followup_sequence_number'),
        Index('ix_followup_queue_status_scheduled_for', 'status', 'scheduled_for'),
    )

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    contact_submission_id = Column(Text, ForeignKey('contact_submissions.id'), nullable=False, index=True)
    lead_score_id = Column(Text, ForeignKey('lead_scores.id'), nullable=True)
    sequence_number = Column(Integer, nullable=False)   # 1-based
    email_type = Column(Text, nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default='pending')
    email_subject = Column(Text, nullable=True)
    email_body = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'contact_submission_id': self.contact_submission_id,
            'lead_score_id': self.lead_score_id,
            'sequence_number': self.sequence_number,
            'email_type': self.email_type,
            'scheduled_for': self.scheduled_for.isoformat() if self.scheduled_for else None,
            'status': self.status,
            'email_subject': self.email_subject,
            'email_body': self.email_body,
            'error_message': self.error_message,
            'sent_at': self.sent_at.isoformat() if self.sent_at else None,
        }
