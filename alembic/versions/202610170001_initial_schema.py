"""Initial schema: users, courses, payments

Revision ID: 202610170001
Revises:
Create Date: 2026-10-17 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610170001"
down_revision = None
branch_labels = None
depends_on = None

user_role_enum = sa.Enum("STUDENT", "INSTRUCTOR", "ADMIN", name="user_role")

payment_status_enum = sa.Enum("PENDING", "APPROVED", "REJECTED", name="payment_status")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False, server_default="STUDENT"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id", name="pk_courses"),
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("student_id", sa.String(length=36), nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("reference_number", sa.String(length=64), nullable=True),
        sa.Column("receipt_url", sa.String(length=512), nullable=False),
        sa.Column("status", payment_status_enum, nullable=False, server_default="PENDING"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.PrimaryKeyConstraint("id", name="pk_payments"),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["users.id"],
            name="fk_payments_student_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["course_id"],
            ["courses.id"],
            name="fk_payments_course_id_courses",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("reference_number", name="uq_payments_reference_number"),
        sa.UniqueConstraint("student_id", "course_id", name="uq_payments_student_id"),
    )
    op.create_index("ix_payments_student_id", "payments", ["student_id"])
    op.create_index("ix_payments_course_id", "payments", ["course_id"])


def downgrade() -> None:
    op.drop_index("ix_payments_course_id", "payments")
    op.drop_index("ix_payments_student_id", "payments")
    op.drop_table("payments")
    op.drop_table("courses")
    op.drop_index("ix_users_email", "users")
    op.drop_table("users")
    payment_status_enum.drop(op.get_bind(), checkfirst=True)
    user_role_enum.drop(op.get_bind(), checkfirst=True)
