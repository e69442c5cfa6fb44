"""
ConversationMessage model — on-site assistant chat history, keyed by session.
"""
from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from app.database import Base


class ConversationMessage(Base):
    __tablename__ = 'conversation_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Text, nullable=False, index=True)
    role = Column(Text, nullable=False)          # user/assistant
    content = Column(Text, nullable=False)
    model_used = Column(Text, nullable=True)
    tokens_used = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
