"""Initial schema

Revision ID: 0001
Revises:
Create Date: 2025-01-24

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create enum types
    op.execute("CREATE TYPE jobtype AS ENUM ('sync_reactions', 'sync_comments', 'enrich_profiles')")
    op.execute("CREATE TYPE jobstatus AS ENUM ('pending', 'queued', 'running', 'completed', 'failed', 'cancelled')")
    op.execute(
        "CREATE TYPE progressstatus AS ENUM "
        "('starting', 'scraping', 'processing', 'enriching', 'unifying', 'completed', 'error')"
    )

    # Profiles table
    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('urn', sa.String(500), nullable=False, index=True),
        sa.Column('primary_identifier', sa.String(255), index=True),
        sa.Column('secondary_identifier', sa.String(255), index=True),
        sa.Column('public_identifier', sa.String(255), index=True),
        sa.Column('alternative_urns', postgresql.JSONB()),
        sa.Column('name', sa.String(500)),
        sa.Column('headline', sa.Text()),
        sa.Column('profile_url', sa.String(1000)),
        sa.Column('profile_pictures', postgresql.JSONB()),
        sa.Column('profile_picture_url', sa.String(1000)),
        sa.Column('first_name', sa.String(255)),
        sa.Column('last_name', sa.String(255)),
        sa.Column('city', sa.String(255)),
        sa.Column('country', sa.String(255)),
        sa.Column('current_title', sa.String(500)),
        sa.Column('current_company', sa.String(500)),
        sa.Column('is_current_position', sa.Boolean()),
        sa.Column('company_linkedin_url', sa.String(1000)),
        sa.Column('enriched_at', sa.DateTime(timezone=True)),
        sa.Column('last_enriched_at', sa.DateTime(timezone=True)),
        sa.Column('first_seen', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # Fallback lookup by (name, headline) when no identifier matches
    op.create_index('ix_profiles_name_headline', 'profiles', ['name'], postgresql_include=['headline'])

    # Posts table
    op.create_table(
        'posts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('post_url', sa.String(1000), nullable=False),
        sa.Column('post_id', sa.String(50), index=True),
        sa.Column('post_urn', sa.String(255)),
        sa.Column('author_name', sa.String(500)),
        sa.Column('author_profile_url', sa.String(1000)),
        sa.Column('author_profile_id', sa.String(255)),
        sa.Column('post_text', sa.Text()),
        sa.Column('num_likes', sa.Integer(), default=0),
        sa.Column('num_comments', sa.Integer(), default=0),
        sa.Column('num_shares', sa.Integer(), default=0),
        sa.Column('posted_at_timestamp', sa.BigInteger()),
        sa.Column('last_reactions_scrape', sa.DateTime(timezone=True)),
        sa.Column('last_comments_scrape', sa.DateTime(timezone=True)),
        sa.Column('engagement_needs_scraping', sa.Boolean(), default=False),
        sa.Column('engagement_last_updated_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
    )

    # Reactions table
    op.create_table(
        'reactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('reactor_profile_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('reaction_type', sa.String(50), nullable=False),
        sa.Column('scraped_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('page_number', sa.Integer()),
    )

    # Comments table
    op.create_table(
        'comments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('post_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('posts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('commenter_profile_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('comment_id', sa.String(100), nullable=False, index=True),
        sa.Column('comment_text', sa.Text()),
        sa.Column('comment_url', sa.String(1000)),
        sa.Column('posted_at_timestamp', sa.BigInteger()),
        sa.Column('posted_at_date', sa.DateTime(timezone=True)),
        sa.Column('is_edited', sa.Boolean(), default=False),
        sa.Column('is_pinned', sa.Boolean(), default=False),
        sa.Column('total_reactions', sa.Integer(), default=0),
        sa.Column('reactions_breakdown', postgresql.JSONB()),
        sa.Column('replies_count', sa.Integer(), default=0),
        sa.Column('scraped_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('page_number', sa.Integer()),
    )

    # Async Jobs table
    op.create_table(
        'async_jobs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), index=True),
        sa.Column('job_type', postgresql.ENUM('sync_reactions', 'sync_comments', 'enrich_profiles', name='jobtype', create_type=False), nullable=False, index=True),
        sa.Column('status', postgresql.ENUM('pending', 'queued', 'running', 'completed', 'failed', 'cancelled', name='jobstatus', create_type=False), default='pending', index=True),
        sa.Column('total_items', sa.Integer(), default=0),
        sa.Column('processed_items', sa.Integer(), default=0),
        sa.Column('failed_items', sa.Integer(), default=0),
        sa.Column('progress_percent', sa.Float(), default=0.0),
        sa.Column('current_step', sa.String(500)),
        sa.Column('config', postgresql.JSONB(), nullable=False),
        sa.Column('result', postgresql.JSONB()),
        sa.Column('error_message', sa.Text()),
        sa.Column('started_at', sa.DateTime(timezone=True)),
        sa.Column('completed_at', sa.DateTime(timezone=True)),
        sa.Column('celery_task_id', sa.String(255), index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now(), nullable=False),
    )

    # Job progress events table
    op.create_table(
        'job_progress_events',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('job_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('async_jobs.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('status', postgresql.ENUM('starting', 'scraping', 'processing', 'enriching', 'unifying', 'completed', 'error', name='progressstatus', create_type=False), nullable=False),
        sa.Column('percent', sa.Float(), default=0.0),
        sa.Column('message', sa.String(1000)),
        sa.Column('counts', postgresql.JSONB()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('job_id', 'sequence', name='uq_job_progress_events_job_sequence'),
    )


def downgrade() -> None:
    op.drop_table('job_progress_events')
    op.drop_table('async_jobs')
    op.drop_table('comments')
    op.drop_table('reactions')
    op.drop_table('posts')
    op.drop_index('ix_profiles_name_headline', table_name='profiles')
    op.drop_table('profiles')

    op.execute("DROP TYPE progressstatus")
    op.execute("DROP TYPE jobstatus")
    op.execute("DROP TYPE jobtype")
