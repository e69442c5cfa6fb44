"""Lead pipeline schema: contact_submissions, lead_scores, followup_queue, agent_interactions, conversation_history

Revision ID: 3f9b1c6e2a14
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9b1c6e2a14'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('contact_submissions',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('phone', sa.Text(), nullable=True),
        sa.Column('business_name', sa.Text(), nullable=True),
        sa.Column('website', sa.Text(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('processing_status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_contact_submissions_processing_status', 'contact_submissions', ['processing_status'])

    op.create_table('lead_scores',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('contact_submission_id', sa.Text(), nullable=False),
        sa.Column('score', sa.Integer(), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('reasoning', sa.Text(), nullable=True),
        sa.Column('budget_indicator', sa.Text(), nullable=True),
        sa.Column('urgency_indicator', sa.Text(), nullable=True),
        sa.Column('decision_maker_likelihood', sa.Integer(), nullable=True),
        sa.Column('industry_fit_score', sa.Integer(), nullable=True),
        sa.Column('recommended_followup_sequence', sa.Text(), nullable=False),
        sa.Column('ai_analysis', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['contact_submission_id'], ['contact_submissions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('contact_submission_id', name='uq_lead_score_submission'),
    )

    op.create_table('followup_queue',
        sa.Column('id', sa.Text(), nullable=False),
        sa.Column('contact_submission_id', sa.Text(), nullable=False),
        sa.Column('lead_score_id', sa.Text(), nullable=True),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('email_type', sa.Text(), nullable=False),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.Text(), nullable=False, server_default='pending'),
        sa.Column('email_subject', sa.Text(), nullable=True),
        sa.Column('email_body', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('claimed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['contact_submission_id'], ['contact_submissions.id']),
        sa.ForeignKeyConstraint(['lead_score_id'], ['lead_scores.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('contact_submission_id', 'sequence_number', name='uq_followup_sequence_number'),
    )
    op.create_index('ix_followup_queue_contact_submission_id', 'followup_queue', ['contact_submission_id'])
    op.create_index('ix_followup_queue_status_scheduled_for', 'followup_queue', ['status', 'scheduled_for'])

    op.create_table('agent_interactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('interaction_type', sa.Text(), nullable=False),
        sa.Column('contact_submission_id', sa.Text(), nullable=True),
        sa.Column('session_id', sa.Text(), nullable=True),
        sa.Column('model_used', sa.Text(), nullable=False),
        sa.Column('input_tokens', sa.Integer(), nullable=True),
        sa.Column('output_tokens', sa.Integer(), nullable=True),
        sa.Column('total_cost_usd', sa.Float(), nullable=True),
        sa.Column('latency_ms', sa.Integer(), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_agent_interactions_interaction_type', 'agent_interactions', ['interaction_type'])
    op.create_index('ix_agent_interactions_contact_submission_id', 'agent_interactions', ['contact_submission_id'])
    op.create_index('ix_agent_interactions_created_at', 'agent_interactions', ['created_at'])

    op.create_table('conversation_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('model_used', sa.Text(), nullable=True),
        sa.Column('tokens_used', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_conversation_history_session_id', 'conversation_history', ['session_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_conversation_history_session_id', table_name='conversation_history')
    op.drop_table('conversation_history')
    op.drop_index('ix_agent_interactions_created_at', table_name='agent_interactions')
    op.drop_index('ix_agent_interactions_contact_submission_id', table_name='agent_interactions')
    op.drop_index('ix_agent_interactions_interaction_type', table_name='agent_interactions')
    op.drop_table('agent_interactions')
    op.drop_index('ix_followup_queue_status_scheduled_for', table_name='followup_queue')
    op.drop_index('ix_followup_queue_contact_submission_id', table_name='followup_queue')
    op.drop_table('followup_queue')
    op.drop_table('lead_scores')
    op.drop_index('ix_contact_submissions_processing_status', table_name='contact_submissions')
    op.drop_table('contact_submissions')
