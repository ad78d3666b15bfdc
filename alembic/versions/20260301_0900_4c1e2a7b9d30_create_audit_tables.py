"""Create audits, audit_results and students tables

Revision ID: 4c1e2a7b9d30
Revises:
Create Date: 2026-03-01 09:00:12.518203+00:00

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "4c1e2a7b9d30"  # pragma: allowlist secret
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "audits",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("promo_id", sa.String(length=50), nullable=False, comment="Zone01 event id"),
        sa.Column(
            "track",
            sa.String(length=20),
            nullable=False,
            comment="Golang | Javascript | Rust | Java",
        ),
        sa.Column("project_name", sa.String(length=100), nullable=False),
        sa.Column(
            "group_id",
            sa.String(length=100),
            nullable=False,
            comment="group.id from the Zone01 feed",
        ),
        sa.Column("summary", sa.Text(), nullable=True, comment="Overall report"),
        sa.Column("warnings", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "priority", sa.String(length=20), nullable=False, comment="Manual override label"
        ),
        sa.Column("is_archived", sa.Boolean(), nullable=False),
        sa.Column(
            "validated_count",
            sa.Integer(),
            nullable=False,
            comment="Denormalised count of validated members",
        ),
        sa.Column("total_members", sa.Integer(), nullable=False),
        sa.Column(
            "auditor_id", sa.String(length=100), nullable=True, comment="Identity provider user id"
        ),
        sa.Column(
            "auditor_name", sa.String(length=255), nullable=False, comment="Denormalised for display"
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Creation timestamp (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Last update timestamp (UTC)",
        ),
        sa.CheckConstraint(
            "track IN ('Golang', 'Javascript', 'Rust', 'Java')", name="check_audit_track"
        ),
        sa.CheckConstraint(
            "priority IN ('urgent', 'warning', 'normal')", name="check_audit_priority"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "promo_id", "project_name", "group_id", name="uq_audits_promo_project_group"
        ),
    )
    op.create_index("idx_audits_promo_track", "audits", ["promo_id", "track"])
    op.create_index("idx_audits_group", "audits", ["group_id"])
    op.create_index("idx_audits_created", "audits", ["created_at"])

    op.create_table(
        "audit_results",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column("audit_id", sa.UUID(), nullable=False),
        sa.Column(
            "student_login",
            sa.String(length=100),
            nullable=False,
            comment="user.login from the Zone01 feed",
        ),
        sa.Column("validated", sa.Boolean(), nullable=False),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("warnings", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Creation timestamp (UTC)",
        ),
        sa.ForeignKeyConstraint(["audit_id"], ["audits.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("audit_id", "student_login", name="uq_audit_results_audit_student"),
    )
    op.create_index("idx_audit_results_audit", "audit_results", ["audit_id"])
    op.create_index("idx_audit_results_student", "audit_results", ["student_login"])

    op.create_table(
        "students",
        sa.Column("id", sa.UUID(), nullable=False, comment="UUID primary key"),
        sa.Column(
            "login",
            sa.String(length=100),
            nullable=False,
            comment="user.login from the Zone01 feed",
        ),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column(
            "promo_name",
            sa.String(length=50),
            nullable=True,
            comment="Promotion key (e.g. 'P1 2025')",
        ),
        sa.Column(
            "is_dropout", sa.Boolean(), nullable=False, comment="Withdrawn from the curriculum"
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Creation timestamp (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
            comment="Last update timestamp (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("login"),
    )
    op.create_index("idx_students_promo", "students", ["promo_name"])
    op.create_index("idx_students_dropout", "students", ["is_dropout"])


def downgrade() -> None:
    op.drop_index("idx_students_dropout", table_name="students")
    op.drop_index("idx_students_promo", table_name="students")
    op.drop_table("students")

    op.drop_index("idx_audit_results_student", table_name="audit_results")
    op.drop_index("idx_audit_results_audit", table_name="audit_results")
    op.drop_table("audit_results")

    op.drop_index("idx_audits_created", table_name="audits")
    op.drop_index("idx_audits_group", table_name="audits")
    op.drop_index("idx_audits_promo_track", table_name="audits")
    op.drop_table("audits")
