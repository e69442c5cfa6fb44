"""
LeadScore model — one immutable row per scored submission.

The unique constraint on contact_submission_id makes a retried scoring
request a no-op instead of a second score.
"""
import uuid

from sqlalchemy import Column, Integer, Text, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from app.database import Base


class LeadScore(Base):
    __tablename__ = 'lead_scores'
    __table_args__ = (
        UniqueConstraint('contact_submission_id', name='uq_lead_score_submission'),
    )

    id = Column(Text, primary_key=True, default=lambda: str(uuid.uuid4()))
    contact_submission_id = Column(Text, ForeignKey('contact_submissions.id'), nullable=False)
    score = Column(Integer, nullable=False)                    # 0-100
    category = Column(Text, nullable=False)                    # hot/warm/cold/unqualified
    reasoning = Column(Text, default='')
    budget_indicator = Column(Text, default='unknown')
    urgency_indicator = Column(Text, default='medium')
    decision_maker_likelihood = Column(Integer, default=50)    # 0-100
    industry_fit_score = Column(Integer, default=50)           # 0-100
    recommended_followup_sequence = Column(Text, nullable=False, default='standard')
    ai_analysis = Column(JSON, default=dict)                   # {key_talking_points, raw_response, ...}
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'id': self.id,
            'contact_submission_id': self.contact_submission_id,
            'score': self.score,
            'category': self.category,
            'reasoning': self.reasoning or '',
            'budget_indicator': self.budget_indicator,
            'urgency_indicator': self.urgency_indicator,
            'decision_maker_likelihood': self.decision_maker_likelihood,
            'industry_fit_score': self.industry_fit_score,
            'recommended_followup_sequence': self.recommended_followup_sequence,
            'ai_analysis': self.ai_analysis or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
