"""
AgentInteraction model — append-only audit row per model invocation.
"""
from sqlalchemy import Column, Integer, Text, Float, Boolean, DateTime
from sqlalchemy.sql import func

from app.database import Base


class AgentInteraction(Base):
    __tablename__ = 'agent_interactions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    interaction_type = Column(Text, nullable=False, index=True)   # chat/lead_processing/email_generation
    contact_submission_id = Column(Text, nullable=True, index=True)
    session_id = Column(Text, nullable=True)
    model_used = Column(Text, nullable=False, default='unknown')
    input_tokens = Column(Integer, default=0)
    output_tokens = Column(Integer, default=0)
    total_cost_usd = Column(Float, default=0.0)
    latency_ms = Column(Integer, nullable=True)
    success = Column(Boolean, nullable=False, default=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'interaction_type': self.interaction_type,
            'contact_submission_id': self.contact_submission_id,
            'session_id': self.session_id,
            'model_used': self.model_used,
            'input_tokens': self.input_tokens or 0,
            'output_tokens': self.output_tokens or 0,
            'total_cost_usd': self.total_cost_usd or 0.0,
            'latency_ms': self.latency_ms,
            'success': bool(self.success),
            'error_message': self.error_message,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
