"""Create users, profiles, categories and tasks (SQLite-safe, idempotent)."""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "202610190001_initial_task_profiles"
down_revision = None
branch_labels = None
depends_on = None


ID_LENGTH = 36
STATUS_LENGTH = 20


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    tables = set(inspector.get_table_names())

    if "user" not in tables:
        op.create_table(
            "user",
            sa.Column("id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=True),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "profile" not in tables:
        op.create_table(
            "profile",
            sa.Column("id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("user_id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("name", sa.String(length=50), nullable=False),
            sa.Column("color", sa.String(length=7), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["user_id"], ["user.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_profile_user_id", "profile", ["user_id"])

    if "category" not in tables:
        op.create_table(
            "category",
            sa.Column("id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("profile_id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("name", sa.String(length=50), nullable=False),
            sa.Column("color", sa.String(length=7), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["profile_id"], ["profile.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_category_profile_id", "category", ["profile_id"])

    if "task" not in tables:
        op.create_table(
            "task",
            sa.Column("id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("profile_id", sa.String(length=ID_LENGTH), nullable=False),
            sa.Column("category_id", sa.String(length=ID_LENGTH), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column(
                "status",
                sa.String(length=STATUS_LENGTH),
                nullable=False,
                server_default="PENDING",
            ),
            sa.Column(
                "priority",
                sa.String(length=STATUS_LENGTH),
                nullable=False,
                server_default="MEDIUM",
            ),
            sa.Column("due_date", sa.DateTime(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["profile_id"], ["profile.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["category_id"], ["category.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_task_category_id", "task", ["category_id"])
        op.create_index(
            "ix_task_partition_sort_order",
            "task",
            ["profile_id", "status", "sort_order"],
        )


def downgrade():
    op.drop_index("ix_task_partition_sort_order", table_name="task")
    op.drop_index("ix_task_category_id", table_name="task")
    op.drop_table("task")
    op.drop_index("ix_category_profile_id", table_name="category")
    op.drop_table("category")
    op.drop_index("ix_profile_user_id", table_name="profile")
    op.drop_table("profile")
    op.drop_table("user")
