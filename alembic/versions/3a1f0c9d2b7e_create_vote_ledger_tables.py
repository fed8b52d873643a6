"""Create voters, videos and votes

Revision ID: 3a1f0c9d2b7e
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.schema import CreateSequence, DropSequence, Sequence as SQLASequence

revision: str = '3a1f0c9d2b7e'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute(CreateSequence(SQLASequence('id_seq', start=1000)))

    op.create_table('voters',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('videos',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('external_id', sa.String(length=255), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), server_default='', nullable=False),
        sa.Column('status', sa.String(length=16), server_default='processing', nullable=False),
        sa.Column('thumbnail_url', sa.String(length=512), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )
    op.create_index('ix_videos_status_created_at', 'videos', ['status', 'created_at'])

    op.create_table('votes',
        sa.Column('id', sa.Integer(), server_default=sa.text("nextval('id_seq')"), nullable=False),
        sa.Column('voter_id', sa.String(length=64), nullable=False),
        sa.Column('video_id', sa.String(length=64), nullable=False),
        sa.Column('video_title', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['voter_id'], ['voters.id'], ),
        sa.ForeignKeyConstraint(['video_id'], ['videos.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('voter_id', 'video_id', name='uq_votes_voter_video')
    )
    op.create_index('ix_votes_video_id', 'votes', ['video_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_votes_video_id', table_name='votes')
    op.drop_table('votes')
    op.drop_index('ix_videos_status_created_at', table_name='videos')
    op.drop_table('videos')
    op.drop_table('voters')

    op.execute(DropSequence(SQLASequence('id_seq')))
