"""create initial schema

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19 00:00:01.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_000001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("picture", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "provider_tokens",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("provider_name", sa.String(), nullable=False),
        sa.Column("access_token_encrypted", sa.Text(), nullable=False),
        sa.Column("refresh_token_encrypted", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("provider_user_id", sa.String(), nullable=True),
        sa.Column("provider_email", sa.String(), nullable=True),
        sa.Column("provider_metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "provider_name", name="uq_provider_tokens_user_provider"),
    )
    op.create_index(op.f("ix_provider_tokens_user_id"), "provider_tokens", ["user_id"], unique=False)

    op.create_table(
        "user_services",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("service_name", sa.String(), nullable=False),
        sa.Column("connected", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "service_name", name="uq_user_services_user_service"),
    )
    op.create_index(op.f("ix_user_services_user_id"), "user_services", ["user_id"], unique=False)

    op.create_table(
        "oauth_pending_states",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("provider_name", sa.String(), nullable=False),
        sa.Column("state", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "provider_name", name="uq_oauth_pending_states_user_provider"),
    )
    op.create_index(op.f("ix_oauth_pending_states_user_id"), "oauth_pending_states", ["user_id"], unique=False)
    op.create_index(op.f("ix_oauth_pending_states_state"), "oauth_pending_states", ["state"], unique=True)

    op.create_table(
        "live_games",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("event_id", sa.String(), nullable=True),
        sa.Column("league", sa.String(), nullable=False),
        sa.Column("match", sa.String(), nullable=False),
        sa.Column("network", sa.String(), nullable=False),
        sa.Column("app", sa.String(), nullable=False),
        sa.Column("link", sa.String(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_live", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_live_games_app"), "live_games", ["app"], unique=False)
    op.create_index(op.f("ix_live_games_start_time"), "live_games", ["start_time"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_live_games_start_time"), table_name="live_games")
    op.drop_index(op.f("ix_live_games_app"), table_name="live_games")
    op.drop_table("live_games")
    op.drop_index(op.f("ix_oauth_pending_states_state"), table_name="oauth_pending_states")
    op.drop_index(op.f("ix_oauth_pending_states_user_id"), table_name="oauth_pending_states")
    op.drop_table("oauth_pending_states")
    op.drop_index(op.f("ix_user_services_user_id"), table_name="user_services")
    op.drop_table("user_services")
    op.drop_index(op.f("ix_provider_tokens_user_id"), table_name="provider_tokens")
    op.drop_table("provider_tokens")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
