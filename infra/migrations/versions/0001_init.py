"""availabilities cache table

Revision ID: 0001_init
Revises: 
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

OFFER_KEY = ['title_id', 'media_type', 'platform', 'country_code', 'access_type', 'addon_label', 'quality', 'season_number']


def upgrade() -> None:
    op.create_table(
        'availabilities',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('title_id', sa.Integer, nullable=False),
        sa.Column('media_type', sa.Enum('movie', 'tv', name='mediatype'), nullable=False),
        sa.Column('platform', sa.String(100), nullable=False),
        sa.Column('country_code', sa.String(10), nullable=False),
        sa.Column('country_name', sa.String(100), nullable=False),
        sa.Column('access_type', sa.Enum('subscription', 'rent', 'buy', 'free', 'addon', name='accesstype'), nullable=False, server_default='subscription'),
        sa.Column('addon_label', sa.String(100), nullable=False, server_default=''),
        sa.Column('season_number', sa.Integer, nullable=True),
        sa.Column('has_french_audio', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('has_french_subtitles', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('streaming_url', sa.Text, nullable=True),
        sa.Column('quality', sa.String(20), nullable=False, server_default='hd'),
        sa.Column('source', sa.String(40), nullable=True),
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now(), nullable=False),
    )
    # season_number is NULL for movies, so NULLs must collide for the upsert to work
    op.create_unique_constraint('uq_availability_offer', 'availabilities', OFFER_KEY, postgresql_nulls_not_distinct=True)
    op.create_index('ix_availability_title_platform', 'availabilities', ['title_id', 'platform'])
    op.create_index('ix_availability_updated_at', 'availabilities', ['updated_at'])


def downgrade() -> None:
    op.drop_index('ix_availability_updated_at', table_name='availabilities')
    op.drop_index('ix_availability_title_platform', table_name='availabilities')
    op.drop_constraint('uq_availability_offer', 'availabilities', type_='unique')
    op.drop_table('availabilities')
    sa.Enum(name='accesstype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='mediatype').drop(op.get_bind(), checkfirst=True)
