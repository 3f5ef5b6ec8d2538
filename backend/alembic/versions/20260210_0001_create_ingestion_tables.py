"""Create commander, decklist, scrape run, card price and price alert tables.

Revision ID: 0001_ingestion_tables
Revises:
Create Date: 2026-02-10

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_ingestion_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'commanders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('edhrec_url', sa.String(length=500), nullable=False),
        sa.Column('last_scraped_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('rank >= 1', name='ck_commanders_rank_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_commanders_name', 'commanders', ['name'], unique=True)
    op.create_index('ix_commanders_rank', 'commanders', ['rank'], unique=False)

    op.create_table(
        'decklists',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('commander_id', sa.Integer(), nullable=False),
        sa.Column('partner_id', sa.Integer(), nullable=True),
        sa.Column('contents', sa.JSON(), nullable=False),
        sa.Column('search_text', sa.Text(), nullable=False, server_default=''),
        *_timestamps(),
        sa.ForeignKeyConstraint(['commander_id'], ['commanders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['partner_id'], ['commanders.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('commander_id', 'partner_id', name='uq_decklists_commander_partner'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_decklists_commander_id', 'decklists', ['commander_id'], unique=False)
    # Full-text search over card and commander names
    op.execute(
        "CREATE INDEX ix_decklists_search_text_fts ON decklists "
        "USING GIN (to_tsvector('english', search_text))"
    )

    op.create_table(
        'scraper_executions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('finished_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='running'),
        sa.Column('commanders_attempted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('commanders_succeeded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('commanders_failed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cards_processed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_summary', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('running', 'completed', 'failed')", name='ck_scraper_executions_status'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_scraper_executions_status', 'scraper_executions', ['status'], unique=False)
    op.create_index('ix_scraper_executions_started_at', 'scraper_executions', ['started_at'], unique=False)

    op.create_table(
        'card_prices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('card_id', sa.String(length=36), nullable=False),
        sa.Column('fetched_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('usd_cents', sa.Integer(), nullable=True),
        sa.Column('usd_foil_cents', sa.Integer(), nullable=True),
        sa.Column('usd_etched_cents', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('usd_cents IS NULL OR usd_cents >= 0', name='ck_card_prices_usd_non_negative'),
        sa.CheckConstraint(
            'usd_foil_cents IS NULL OR usd_foil_cents >= 0', name='ck_card_prices_foil_non_negative'
        ),
        sa.CheckConstraint(
            'usd_etched_cents IS NULL OR usd_etched_cents >= 0', name='ck_card_prices_etched_non_negative'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    # Latest-price lookup: newest row first per card
    op.create_index(
        'ix_card_prices_card_id_fetched_at',
        'card_prices',
        ['card_id', sa.text('fetched_at DESC')],
        unique=False,
    )

    op.create_table(
        'price_alerts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('card_id', sa.String(length=36), nullable=False),
        sa.Column('treatment', sa.String(length=20), nullable=False),
        sa.Column('old_price_cents', sa.Integer(), nullable=False),
        sa.Column('new_price_cents', sa.Integer(), nullable=False),
        sa.Column('percentage_change', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('direction', sa.String(length=20), nullable=False),
        sa.Column('dismissed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('dismissed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("treatment IN ('normal', 'foil', 'etched')", name='ck_price_alerts_treatment'),
        sa.CheckConstraint("direction IN ('increase', 'decrease')", name='ck_price_alerts_direction'),
        sa.CheckConstraint(
            'old_price_cents >= 0 AND new_price_cents >= 0', name='ck_price_alerts_prices'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_price_alerts_card_id', 'price_alerts', ['card_id'], unique=False)
    op.create_index(
        'ix_price_alerts_dismissed_created_at', 'price_alerts', ['dismissed', 'created_at'], unique=False
    )


def downgrade() -> None:
    op.drop_index('ix_price_alerts_dismissed_created_at', table_name='price_alerts')
    op.drop_index('ix_price_alerts_card_id', table_name='price_alerts')
    op.drop_table('price_alerts')

    op.drop_index('ix_card_prices_card_id_fetched_at', table_name='card_prices')
    op.drop_table('card_prices')

    op.drop_index('ix_scraper_executions_started_at', table_name='scraper_executions')
    op.drop_index('ix_scraper_executions_status', table_name='scraper_executions')
    op.drop_table('scraper_executions')

    op.execute("DROP INDEX IF EXISTS ix_decklists_search_text_fts")
    op.drop_index('ix_decklists_commander_id', table_name='decklists')
    op.drop_table('decklists')

    op.drop_index('ix_commanders_rank', table_name='commanders')
    op.drop_index('ix_commanders_name', table_name='commanders')
    op.drop_table('commanders')
