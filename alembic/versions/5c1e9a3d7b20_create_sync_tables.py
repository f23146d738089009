"""create tenant, data source, run tracking and connector tables

Revision ID: 5c1e9a3d7b20
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5c1e9a3d7b20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_VALUES = ('RUNNING', 'COMPLETED', 'FAILED')


def upgrade() -> None:
    """Create orchestration and connector storage tables."""
    op.create_table('tenants',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('data_sources',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('tenant_id', sa.String(length=36), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), nullable=False),
        sa.Column('last_sync_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_data_sources_tenant_id', 'data_sources', ['tenant_id'])
    op.create_table('data_source_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('data_source_id', sa.String(length=36), nullable=False),
        sa.Column('key', sa.String(length=100), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('is_secret', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['data_source_id'], ['data_sources.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('data_source_id', 'key', name='uq_data_source_config_key')
    )
    op.create_table('data_source_runs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('data_source_id', sa.String(length=36), nullable=False),
        sa.Column('script_name', sa.String(length=200), nullable=False),
        sa.Column('import_batch_id', sa.String(length=36), nullable=True),
        sa.Column('status', sa.Enum(*STATUS_VALUES, name='runstatus'), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('duration_ms', sa.Integer(), nullable=True),
        sa.Column('last_fetched_data_at', sa.DateTime(), nullable=True),
        sa.Column('earliest_fetched_data_at', sa.DateTime(), nullable=True),
        sa.Column('records_imported', sa.Integer(), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['data_source_id'], ['data_sources.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('data_source_id', 'script_name', name='uq_data_source_script')
    )
    op.create_index('ix_data_source_runs_status', 'data_source_runs', ['status'])
    op.create_table('import_batches',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('triggered_by', sa.String(length=100), nullable=False),
        sa.Column('status', sa.Enum(*STATUS_VALUES, name='batchstatus'), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('scripts_executed', sa.Integer(), nullable=False),
        sa.Column('scripts_failed', sa.Integer(), nullable=False),
        sa.Column('scripts_skipped', sa.Integer(), nullable=False),
        sa.Column('errors', sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('sync_locks',
        sa.Column('lock_key', sa.String(length=300), nullable=False),
        sa.Column('holder_id', sa.String(length=100), nullable=False),
        sa.Column('acquired_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('lock_key')
    )
    op.create_table('repositories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('data_source_id', sa.String(length=36), nullable=False),
        sa.Column('owner', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('url', sa.String(length=500), nullable=True),
        sa.Column('language', sa.String(length=100), nullable=True),
        sa.Column('stars', sa.Integer(), nullable=False),
        sa.Column('forks', sa.Integer(), nullable=False),
        sa.Column('is_private', sa.Boolean(), nullable=False),
        sa.Column('is_archived', sa.Boolean(), nullable=False),
        sa.Column('pushed_at', sa.DateTime(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['data_source_id'], ['data_sources.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('data_source_id', 'full_name', name='uq_data_source_repository')
    )
    op.create_table('commits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('repository_id', sa.Integer(), nullable=False),
        sa.Column('sha', sa.String(length=40), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('author_name', sa.String(length=200), nullable=True),
        sa.Column('author_email', sa.String(length=200), nullable=True),
        sa.Column('author_login', sa.String(length=100), nullable=True),
        sa.Column('committed_at', sa.DateTime(), nullable=True),
        sa.Column('url', sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(['repository_id'], ['repositories.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('repository_id', 'sha', name='uq_repository_commit_sha')
    )
    op.create_index('ix_commits_committed_at', 'commits', ['committed_at'])


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_index('ix_commits_committed_at', table_name='commits')
    op.drop_table('commits')
    op.drop_table('repositories')
    op.drop_table('sync_locks')
    op.drop_table('import_batches')
    op.drop_index('ix_data_source_runs_status', table_name='data_source_runs')
    op.drop_table('data_source_runs')
    op.drop_table('data_source_configs')
    op.drop_index('ix_data_sources_tenant_id', table_name='data_sources')
    op.drop_table('data_sources')
    op.drop_table('tenants')
    sa.Enum(name='batchstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='runstatus').drop(op.get_bind(), checkfirst=True)
