"""Baseline: users and inspection checklist tables.

Revision ID: 0001_inspections_baseline
Revises:
Create Date: 2026-01-12

Creates:
- users (approval workflow, token_version)
- inspections
- inspection_responses (unique per inspection/section/question)
- inspection_images
- inspection_logs
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_inspections_baseline'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), server_default=sa.text("'PENDING'"), nullable=False),
        sa.Column('token_version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('approved_by', sa.Uuid(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', sa.Uuid(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['rejected_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('idx_users_role', 'users', ['role'])

    op.create_table(
        'inspections',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), server_default=sa.text("'DRAFT'"), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('location', sa.String(500), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_inspections_user_created', 'inspections', ['user_id', 'created_at'])
    op.create_index('idx_inspections_status', 'inspections', ['status'])

    op.create_table(
        'inspection_responses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('section_number', sa.Integer(), nullable=False),
        sa.Column('section_title', sa.String(255), nullable=False),
        sa.Column('question_number', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('response', sa.String(10), server_default=sa.text("'NA'"), nullable=False),
        sa.Column('text_value', sa.Text(), nullable=True),
        sa.Column('list_values', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'inspection_id', 'section_number', 'question_number',
            name='uq_inspection_response_slot',
        ),
    )
    op.create_index('idx_inspection_responses_inspection', 'inspection_responses', ['inspection_id'])
    op.create_index('idx_inspection_responses_response', 'inspection_responses', ['response'])

    op.create_table(
        'inspection_images',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('url', sa.String(2048), nullable=False),
        sa.Column('caption', sa.String(255), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('section_number', sa.Integer(), nullable=True),
        sa.Column('position', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('uploaded_by', sa.Uuid(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['uploaded_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_inspection_images_inspection_type', 'inspection_images', ['inspection_id', 'type']
    )

    op.create_table(
        'inspection_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('inspection_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('user_email', sa.String(255), nullable=True),
        sa.Column('user_name', sa.String(255), nullable=True),
        sa.Column('action', sa.String(30), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('new_value', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['inspection_id'], ['inspections.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'idx_inspection_logs_inspection_created', 'inspection_logs', ['inspection_id', 'created_at']
    )


def downgrade() -> None:
    op.drop_index('idx_inspection_logs_inspection_created', table_name='inspection_logs')
    op.drop_table('inspection_logs')
    op.drop_index('idx_inspection_images_inspection_type', table_name='inspection_images')
    op.drop_table('inspection_images')
    op.drop_index('idx_inspection_responses_response', table_name='inspection_responses')
    op.drop_index('idx_inspection_responses_inspection', table_name='inspection_responses')
    op.drop_table('inspection_responses')
    op.drop_index('idx_inspections_status', table_name='inspections')
    op.drop_index('idx_inspections_user_created', table_name='inspections')
    op.drop_table('inspections')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
