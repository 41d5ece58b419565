"""ledger baseline

Revision ID: 5b1e0c7a9d42
Revises: 
Create Date: 2026-10-19 10:12:41.503118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7a9d42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # 1. 资产持仓表
    op.create_table('asset_positions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('asset_type', sa.String(length=10), nullable=False),
        sa.Column('symbol', sa.String(length=10), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column('average_price', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'asset_type', 'symbol', name='unique_user_asset')
    )
    op.create_index(op.f('ix_asset_positions_user_id'), 'asset_positions', ['user_id'], unique=False)

    # 2. 交易流水表（只追加）
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('symbol', sa.String(length=10), nullable=False),
        sa.Column('type', sa.String(length=4), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=15, scale=4), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_transactions_user_timestamp', 'transactions', ['user_id', 'timestamp'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_transactions_user_timestamp', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index(op.f('ix_asset_positions_user_id'), table_name='asset_positions')
    op.drop_table('asset_positions')
