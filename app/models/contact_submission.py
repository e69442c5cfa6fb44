"""
ContactSubmission model — one row per contact-form submission.

Written once by the contact form; only the lead scorer moves
processing_status (pending → processing → completed | failed).
"""
import uuid

from sqlalchemy import Column, Text, DateTime
from sqlalchemy.sql import func

from app.database import Base


def _new_id():
    return str(uuid.uuid4())


class ContactSubmission(Base):
    __tablename__ = 'contact_submissions'

    id = Column(Text, primary_key=True, default=_new_id)
    full_name = Column(Text, nullable=False, default='')
    email = Column(Text, nullable=False)
    phone = Column(Text, default='')
    business_name = Column(Text, default='')
    website = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    processing_status = Column(Text, nullable=False, default='pending', index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    processed_at = Column(DateTime(timezone=True), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'full_name': self.full_name or '',
            'email': self.email,
            'phone': self.phone or '',
            'business_name': self.business_name or '',
            'website': self.website,
            'message': self.message,
            'processing_status': self.processing_status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
        }
