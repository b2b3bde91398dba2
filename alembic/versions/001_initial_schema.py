"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'menu_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('category', sa.Text(), nullable=False),
        sa.Column('dietary_tag', sa.String(length=50), nullable=True),
        sa.Column('availability', sa.Boolean(), server_default=sa.text('TRUE'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.CheckConstraint('char_length(name) BETWEEN 1 AND 255', name='menu_items_name_check'),
        sa.CheckConstraint(
            'description IS NULL OR char_length(description) <= 1000',
            name='menu_items_description_check',
        ),
        sa.CheckConstraint('price > 0 AND price <= 99999.99', name='menu_items_price_check'),
        sa.CheckConstraint(
            "category IN ('appetizer', 'main', 'dessert', 'beverage')",
            name='menu_items_category_check',
        ),
        sa.UniqueConstraint('name', name='menu_items_name_key'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_menu_items_category', 'menu_items', ['category'])


def downgrade() -> None:
    op.drop_index('idx_menu_items_category', table_name='menu_items')
    op.drop_table('menu_items')
