"""Initial migration

Revision ID: 0001_initial
Revises: 
Create Date: 2025-11-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.sql import func

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create admin table
    op.create_table(
        'admin',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('password', sa.String(length=255), nullable=False, comment="bcrypt-хэш, наружу не отдаётся"),
        sa.Column('tags', sa.String(length=255), nullable=False, server_default='RDP'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    )
    op.create_index('ix_admin_id', 'admin', ['id'])
    op.create_index('ix_admin_email', 'admin', ['email'])

    # Create published_floors table
    op.create_table(
        'published_floors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('image_url', sa.String(), nullable=False, comment="URL изображения этажа или data: URL с самим изображением"),
        sa.Column('points', sa.JSON(), nullable=False, comment="Точки-оверлеи карты, формат определяет фронтенд"),
        sa.Column('walkable', sa.JSON(), nullable=False, comment="Подсказка для проходимых областей: {color, tolerance}"),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('north_offset', sa.Float(), nullable=False, server_default='0', comment="Поворот карты относительно севера, градусы"),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=func.now(), nullable=False),
    )
    op.create_index('ix_published_floors_id', 'published_floors', ['id'])
    op.create_index('ix_published_floors_sort_order', 'published_floors', ['sort_order'])


def downgrade():
    op.drop_index('ix_published_floors_sort_order', table_name='published_floors')
    op.drop_index('ix_published_floors_id', table_name='published_floors')
    op.drop_table('published_floors')
    op.drop_index('ix_admin_email', table_name='admin')
    op.drop_index('ix_admin_id', table_name='admin')
    op.drop_table('admin')
