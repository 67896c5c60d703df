"""initial schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("github_id", sa.String(length=255), nullable=False, unique=True),
        sa.Column("github_username", sa.String(length=255), nullable=False, unique=True),
        sa.Column("email", sa.String(length=255)),
        sa.Column("avatar_url", sa.String(length=512)),
        sa.Column("github_access_token", sa.String(length=512)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_github_id", "users", ["github_id"])
    op.create_index("ix_users_github_username", "users", ["github_username"])

    op.create_table(
        "repositories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("github_id", sa.BigInteger(), nullable=False, unique=True),
        sa.Column("full_name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("language", sa.String(length=100)),
        sa.Column("private", sa.Boolean(), server_default=sa.false()),
        sa.Column("url", sa.String(length=512)),
        sa.Column("clone_url", sa.String(length=512)),
        sa.Column("default_branch", sa.String(length=255), server_default="main"),
        sa.Column("stargazers_count", sa.Integer(), server_default="0"),
        sa.Column("forks_count", sa.Integer(), server_default="0"),
        sa.Column("topics", sa.JSON(), server_default=sa.text("'[]'")),
        sa.Column("active", sa.Boolean(), server_default=sa.true()),
        sa.Column("imported_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("last_sync_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_repositories_github_id", "repositories", ["github_id"])
    op.create_index("ix_repositories_full_name", "repositories", ["full_name"])
    op.create_index("ix_repositories_owner_id", "repositories", ["owner_id"])
    op.create_index("ix_repositories_active", "repositories", ["active"])

    op.create_table(
        "user_repositories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "repository_id",
            sa.Integer(),
            sa.ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=20), server_default="contributor"),
        sa.Column("can_manage_badges", sa.Boolean(), server_default=sa.false()),
        sa.Column("can_view_analytics", sa.Boolean(), server_default=sa.true()),
        sa.Column("can_invite_contributors", sa.Boolean(), server_default=sa.false()),
        sa.Column("active", sa.Boolean(), server_default=sa.true()),
        sa.Column("imported_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "repository_id", name="uq_user_repositories_user_repo"),
    )
    op.create_index("ix_user_repositories_user_id", "user_repositories", ["user_id"])
    op.create_index("ix_user_repositories_repository_id", "user_repositories", ["repository_id"])

    op.create_table(
        "badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "repository_id",
            sa.Integer(),
            sa.ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500)),
        sa.Column("criteria_type", sa.String(length=20), server_default="prs"),
        sa.Column("criteria_value", sa.Integer(), nullable=False),
        sa.Column("icon", sa.String(length=16)),
        sa.Column("color", sa.String(length=7)),
        sa.Column("difficulty", sa.String(length=20), server_default="easy"),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false()),
        sa.Column("active", sa.Boolean(), server_default=sa.true()),
        sa.Column("created_by_id", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "repository_id", "criteria_type", "criteria_value", name="uq_badges_repo_criteria"
        ),
        sa.CheckConstraint(
            "criteria_value >= 1 AND criteria_value <= 10000", name="ck_badges_criteria_value"
        ),
    )
    op.create_index("ix_badges_repository_id", "badges", ["repository_id"])
    op.create_index("ix_badges_active", "badges", ["active"])

    op.create_table(
        "user_badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_id", sa.Integer(), sa.ForeignKey("badges.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "repository_id",
            sa.Integer(),
            sa.ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("awarded_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("awarded_by", sa.String(length=20), server_default="system"),
        sa.Column("criteria_met_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("actual_value", sa.Integer(), server_default="0"),
        sa.Column("metadata", sa.JSON()),
        sa.Column("acknowledged", sa.Boolean(), server_default=sa.false()),
        sa.Column("acknowledged_at", sa.DateTime()),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
        sa.CheckConstraint("actual_value >= 0", name="ck_user_badges_actual_value"),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])
    op.create_index("ix_user_badges_badge_id", "user_badges", ["badge_id"])
    op.create_index("ix_user_badges_repository_id", "user_badges", ["repository_id"])
    op.create_index("ix_user_badges_awarded_at", "user_badges", ["awarded_at"])

    op.create_table(
        "pull_requests",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "repository_id",
            sa.Integer(),
            sa.ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("github_pr_id", sa.BigInteger(), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("state", sa.String(length=16), server_default="open"),
        sa.Column("merged", sa.Boolean(), server_default=sa.false()),
        sa.Column("merged_at", sa.DateTime()),
        sa.Column("closed_at", sa.DateTime()),
        sa.Column("github_created_at", sa.DateTime()),
        sa.Column("github_updated_at", sa.DateTime()),
        sa.Column("base_branch", sa.String(length=255)),
        sa.Column("head_branch", sa.String(length=255)),
        sa.Column("commit_count", sa.Integer(), server_default="1"),
        sa.Column("changed_files", sa.Integer(), server_default="0"),
        sa.Column("additions", sa.Integer(), server_default="0"),
        sa.Column("deletions", sa.Integer(), server_default="0"),
        sa.Column("labels", sa.JSON(), server_default=sa.text("'[]'")),
        sa.Column("url", sa.String(length=512)),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint("repository_id", "github_pr_id", name="uq_pull_requests_repo_pr"),
    )
    op.create_index("ix_pull_requests_repository_id", "pull_requests", ["repository_id"])
    op.create_index("ix_pull_requests_user_id", "pull_requests", ["user_id"])

    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("delivery_id", sa.String(length=255), nullable=False, unique=True),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=64)),
        sa.Column("repository_full_name", sa.String(length=255)),
        sa.Column("repository_owner", sa.String(length=255)),
        sa.Column("repository_private", sa.Boolean()),
        sa.Column("sender_login", sa.String(length=255)),
        sa.Column("sender_id", sa.BigInteger()),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("received_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("processed_at", sa.DateTime()),
    )
    op.create_index("ix_webhook_events_delivery_id", "webhook_events", ["delivery_id"])
    op.create_index("ix_webhook_events_event_type", "webhook_events", ["event_type"])
    op.create_index("ix_webhook_events_repository_full_name", "webhook_events", ["repository_full_name"])
    op.create_index("ix_webhook_events_user_id", "webhook_events", ["user_id"])
    op.create_index("ix_webhook_events_received_at", "webhook_events", ["received_at"])


def downgrade() -> None:
    op.drop_table("webhook_events")
    op.drop_table("pull_requests")
    op.drop_table("user_badges")
    op.drop_table("badges")
    op.drop_table("user_repositories")
    op.drop_table("repositories")
    op.drop_table("users")
