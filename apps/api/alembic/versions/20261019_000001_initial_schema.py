"""create clip catalog schema

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
        "channels",
        sa.Column("login", sa.String(), nullable=False),
        sa.Column("seq_bootstrapped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_refresh_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("login"),
    )

    op.create_table(
        "games",
        sa.Column("game_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("box_art_url", sa.String(), nullable=True),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("game_id"),
    )

    op.create_table(
        "clips",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("platform_clip_id", sa.String(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("platform", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("game_id", sa.String(), nullable=True),
        sa.Column("creator_name", sa.String(), nullable=True),
        sa.Column("thumbnail_url", sa.String(), nullable=True),
        sa.Column("blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("imported_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.ForeignKeyConstraint(["channel"], ["channels.login"]),
        sa.ForeignKeyConstraint(["game_id"], ["games.game_id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel", "platform_clip_id", name="uq_clips_channel_platform_clip_id"),
        sa.UniqueConstraint("channel", "seq", name="uq_clips_channel_seq"),
    )
    op.create_index("ix_clips_channel", "clips", ["channel"], unique=False)
    op.create_index("ix_clips_game_id", "clips", ["game_id"], unique=False)
    op.create_index("ix_clips_blocked", "clips", ["blocked"], unique=False)

    op.create_table(
        "blocklist",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("clip_id", sa.String(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("removed_by", sa.String(), nullable=True),
        sa.Column("removed_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel", "clip_id", name="uq_blocklist_channel_clip_id"),
    )
    op.create_index("ix_blocklist_channel", "blocklist", ["channel"], unique=False)

    op.create_table(
        "command_requests",
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("kind", sa.String(), nullable=False),
        sa.Column("nonce", sa.String(), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("window_seconds", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("channel", "kind"),
    )

    op.create_table(
        "now_playing",
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("clip_id", sa.String(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("controller_id", sa.String(), nullable=True),
        sa.Column("contested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("playlist_index", sa.Integer(), nullable=True),
        sa.Column("playlist_ids", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("channel"),
    )

    op.create_table(
        "category_filters",
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("query", sa.String(), nullable=False),
        sa.Column("game_ids", sa.JSON(), nullable=False),
        sa.Column("game_names", sa.JSON(), nullable=False),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("clip_count", sa.Integer(), nullable=False),
        sa.Column("nonce", sa.String(), nullable=False),
        sa.Column("set_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("channel"),
    )

    op.create_table(
        "clip_votes",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("clip_id", sa.String(), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=True),
        sa.Column("up_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("down_votes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel", "clip_id", name="uq_clip_votes_channel_clip_id"),
    )
    op.create_index("ix_clip_votes_channel", "clip_votes", ["channel"], unique=False)

    op.create_table(
        "vote_ledger",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("clip_id", sa.String(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("direction", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("channel", "clip_id", "username", name="uq_vote_ledger_channel_clip_user"),
    )
    op.create_index("ix_vote_ledger_channel", "vote_ledger", ["channel"], unique=False)

    op.create_table(
        "clip_plays",
        sa.Column("channel", sa.String(), nullable=False),
        sa.Column("clip_id", sa.String(), nullable=False),
        sa.Column("play_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_played_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("channel", "clip_id"),
    )


def downgrade() -> None:
    op.drop_table("clip_plays")
    op.drop_index("ix_vote_ledger_channel", table_name="vote_ledger")
    op.drop_table("vote_ledger")
    op.drop_index("ix_clip_votes_channel", table_name="clip_votes")
    op.drop_table("clip_votes")
    op.drop_table("category_filters")
    op.drop_table("now_playing")
    op.drop_table("command_requests")
    op.drop_index("ix_blocklist_channel", table_name="blocklist")
    op.drop_table("blocklist")
    op.drop_index("ix_clips_blocked", table_name="clips")
    op.drop_index("ix_clips_game_id", table_name="clips")
    op.drop_index("ix_clips_channel", table_name="clips")
    op.drop_table("clips")
    op.drop_table("games")
    op.drop_table("channels")
