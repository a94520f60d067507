"""Initial baseline migration: users, decks and games."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Users ----------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("api_token_hash", sa.String(length=64), nullable=True),
        sa.Column("api_token_hint", sa.String(length=12), nullable=True),
        sa.Column("api_token_created_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("api_token_hash", name="uq_users_api_token_hash"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # Decks ----------------------------------------------------------------
    op.create_table(
        "decks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_decks_user_id_users"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("target_bracket", sa.Float(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("archidekt_link", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "name", name="uq_decks_user_name"),
    )
    op.create_index("ix_decks_user_id", "decks", ["user_id"])
    op.create_index("ix_decks_created_at", "decks", ["created_at"])

    # Games ----------------------------------------------------------------
    op.create_table(
        "games",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_games_user_id_users"),
            nullable=False,
        ),
        sa.Column(
            "deck_id",
            sa.String(length=36),
            sa.ForeignKey("decks.id", ondelete="CASCADE", name="fk_games_deck_id_decks"),
            nullable=False,
        ),
        sa.Column("winner", sa.Integer(), nullable=True),
        sa.Column("fun", sa.Float(), nullable=True),
        sa.Column("p2_fun", sa.Float(), nullable=True),
        sa.Column("p3_fun", sa.Float(), nullable=True),
        sa.Column("p4_fun", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("est_bracket", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_games_user_id", "games", ["user_id"])
    op.create_index("ix_games_deck_id", "games", ["deck_id"])
    op.create_index("ix_games_created_at", "games", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_games_created_at", table_name="games")
    op.drop_index("ix_games_deck_id", table_name="games")
    op.drop_index("ix_games_user_id", table_name="games")
    op.drop_table("games")

    op.drop_index("ix_decks_created_at", table_name="decks")
    op.drop_index("ix_decks_user_id", table_name="decks")
    op.drop_table("decks")

    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
