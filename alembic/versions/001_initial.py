"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Tracked products table
    op.create_table(
        'tracked_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('url', sa.Text(), nullable=False),
        sa.Column('vendor', sa.String(length=32), nullable=False),
        sa.Column('current_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_checked_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tracked_products_url', 'tracked_products', ['url'])
    op.create_index('ix_tracked_products_is_active', 'tracked_products', ['is_active'])

    # Price snapshots table
    op.create_table(
        'price_snapshots',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('recorded_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['tracked_products.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_price_snapshots_product_id', 'price_snapshots', ['product_id'])


def downgrade() -> None:
    op.drop_index('ix_price_snapshots_product_id', table_name='price_snapshots')
    op.drop_table('price_snapshots')
    op.drop_index('ix_tracked_products_is_active', table_name='tracked_products')
    op.drop_index('ix_tracked_products_url', table_name='tracked_products')
    op.drop_table('tracked_products')
