"""initial complaint desk schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates profiles, user_roles, attachments, complaints and
complaint_status_history with the same CHECK constraints as the ORM models.
The complaints -> attachments foreign key is added after both tables exist
because the two tables reference each other.
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ROLE_VALUES = ("student", "admin")
CATEGORY_VALUES = (
    "mentor",
    "admin",
    "academic_counsellor",
    "working_hub",
    "peer",
    "other",
)
STATUS_VALUES = ("open", "in_progress", "resolved")


def _enum(values: tuple[str, ...], name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, create_constraint=True)


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("role", _enum(ROLE_VALUES, "app_role"), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
        sa.CheckConstraint(
            "length(full_name) > 0 AND length(full_name) <= 100",
            name="ck_profiles_full_name_length",
        ),
        sa.CheckConstraint("length(email) <= 254", name="ck_profiles_email_length"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)
    op.create_index("idx_profiles_role", "profiles", ["role"])
    op.create_index("idx_profiles_active", "profiles", ["is_active"])

    op.create_table(
        "user_roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", _enum(ROLE_VALUES, "user_role"), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
    )

    op.create_table(
        "complaints",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "student_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(120), nullable=False),
        sa.Column(
            "category", _enum(CATEGORY_VALUES, "complaint_category"), nullable=False
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("attachment_id", sa.String(36), nullable=True),
        sa.Column("status", _enum(STATUS_VALUES, "complaint_status"), nullable=False),
        sa.Column("admin_note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
        sa.CheckConstraint(
            "length(title) > 0 AND length(title) <= 120",
            name="ck_complaints_title_length",
        ),
        sa.CheckConstraint(
            "length(description) > 0 AND length(description) <= 5000",
            name="ck_complaints_description_length",
        ),
        sa.CheckConstraint(
            "admin_note IS NULL OR length(admin_note) <= 5000",
            name="ck_complaints_admin_note_length",
        ),
        sa.UniqueConstraint("attachment_id", name="uq_complaints_attachment_id"),
    )
    op.create_index(
        "idx_complaints_student_id_created_at",
        "complaints",
        ["student_id", "created_at"],
    )
    op.create_index("idx_complaints_status", "complaints", ["status"])
    op.create_index("idx_complaints_category", "complaints", ["category"])
    op.create_index("idx_complaints_created_at", "complaints", ["created_at"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "owner_user_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "complaint_id",
            sa.String(36),
            sa.ForeignKey("complaints.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("original_filename", sa.String(255), nullable=False),
        sa.Column("stored_path", sa.String(1024), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("byte_size", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.CheckConstraint(
            "length(original_filename) > 0 AND length(original_filename) <= 255",
            name="ck_attachments_filename_length",
        ),
        sa.CheckConstraint(
            "length(stored_path) <= 1024", name="ck_attachments_stored_path_length"
        ),
        sa.CheckConstraint(
            "mime_type IN ('application/pdf', 'image/jpeg', 'image/png')",
            name="ck_attachments_mime_type",
        ),
        sa.CheckConstraint(
            "byte_size > 0 AND byte_size <= 10485760", name="ck_attachments_byte_size"
        ),
    )
    op.create_index("idx_attachments_owner_user_id", "attachments", ["owner_user_id"])
    op.create_index("idx_attachments_complaint_id", "attachments", ["complaint_id"])

    # SQLite cannot ALTER in a foreign key; batch mode rebuilds the table there.
    with op.batch_alter_table("complaints") as batch_op:
        batch_op.create_foreign_key(
            "fk_complaints_attachment",
            "attachments",
            ["attachment_id"],
            ["id"],
            ondelete="SET NULL",
        )

    op.create_table(
        "complaint_status_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "complaint_id",
            sa.String(36),
            sa.ForeignKey("complaints.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "changed_by_user_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "from_status", _enum(STATUS_VALUES, "history_from_status"), nullable=True
        ),
        sa.Column(
            "to_status", _enum(STATUS_VALUES, "history_to_status"), nullable=False
        ),
        sa.Column("note_snapshot", sa.Text(), nullable=True),
        sa.Column("changed_at", sa.DateTime()),
        sa.CheckConstraint(
            "note_snapshot IS NULL OR length(note_snapshot) <= 5000",
            name="ck_history_note_snapshot_length",
        ),
    )
    op.create_index(
        "idx_history_complaint_id_changed_at",
        "complaint_status_history",
        ["complaint_id", "changed_at"],
    )
    op.create_index(
        "idx_history_changed_by_user_id",
        "complaint_status_history",
        ["changed_by_user_id"],
    )


def downgrade() -> None:
    """Drop every table. Destroys all data."""
    op.drop_table("complaint_status_history")
    with op.batch_alter_table("complaints") as batch_op:
        batch_op.drop_constraint("fk_complaints_attachment", type_="foreignkey")
    op.drop_table("attachments")
    op.drop_table("complaints")
    op.drop_table("user_roles")
    op.drop_table("profiles")
