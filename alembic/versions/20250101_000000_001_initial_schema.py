"""Initial schema with all core tables.

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    """Create initial database schema."""

    # Practices table
    op.create_table(
        "practices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("postcode", sa.String(20), nullable=True),
        sa.Column("latitude", sa.Numeric(10, 8), nullable=True),
        sa.Column("longitude", sa.Numeric(11, 8), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("rating", sa.Numeric(2, 1), nullable=True),
        sa.Column("review_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("wheelchair_access", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sign_language", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("visual_support", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("cognitive_support", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("disabled_parking", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("opening_hours", sa.JSON(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("connection_tag", sa.String(50), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_practices"),
        sa.UniqueConstraint("connection_tag", name="uq_practices_connection_tag"),
    )

    # Treatments table
    op.create_table(
        "treatments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_treatments"),
    )

    # Dentists table
    op.create_table(
        "dentists",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("practice_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("specialization", sa.String(255), nullable=True),
        sa.Column("experience", sa.Integer(), nullable=True),
        sa.Column("qualifications", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_dentists"),
        sa.ForeignKeyConstraint(
            ["practice_id"], ["practices.id"], name="fk_dentists_practice_id_practices"
        ),
    )
    op.create_index("ix_dentists_practice_id", "dentists", ["practice_id"])

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("user_type", sa.String(20), nullable=False, server_default="patient"),
        sa.Column("practice_id", sa.Integer(), nullable=True),
        sa.Column("is_guest", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("gdpr_consent_given", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("gdpr_consent_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "marketing_consent_given", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("marketing_consent_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_retention_date", sa.DateTime(timezone=True), nullable=True),
        # Encrypted at rest (Fernet, "enc:" prefix)
        sa.Column("medical_conditions", sa.Text(), nullable=True),
        sa.Column("medications", sa.Text(), nullable=True),
        sa.Column("allergies", sa.Text(), nullable=True),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.ForeignKeyConstraint(
            ["practice_id"], ["practices.id"], name="fk_users_practice_id_practices"
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_practice_id", "users", ["practice_id"])

    # Sessions table
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_sessions"),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_sessions_user_id_users",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_sessions_user_id", "sessions", ["user_id"])

    # Appointments table
    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("practice_id", sa.Integer(), nullable=False),
        sa.Column("dentist_id", sa.Integer(), nullable=True),
        sa.Column("treatment_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.String(5), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("treatment_type", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_appointments"),
        sa.ForeignKeyConstraint(
            ["practice_id"], ["practices.id"], name="fk_appointments_practice_id_practices"
        ),
        sa.ForeignKeyConstraint(
            ["dentist_id"], ["dentists.id"], name="fk_appointments_dentist_id_dentists"
        ),
        sa.ForeignKeyConstraint(
            ["treatment_id"], ["treatments.id"], name="fk_appointments_treatment_id_treatments"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_appointments_user_id_users"
        ),
    )
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index(
        "ix_appointments_practice_date", "appointments", ["practice_id", "appointment_date"]
    )

    # Triage assessments table
    op.create_table(
        "triage_assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("appointment_id", sa.Integer(), nullable=True),
        sa.Column("pain_level", sa.Integer(), nullable=False),
        sa.Column("pain_duration", sa.String(50), nullable=False),
        sa.Column("symptoms", sa.Text(), nullable=False),
        sa.Column("swelling", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("trauma", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("bleeding", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("infection", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("urgency_level", sa.String(20), nullable=False),
        sa.Column("triage_notes", sa.Text(), nullable=True),
        sa.Column("anxiety_level", sa.String(20), nullable=True),
        # Encrypted at rest (Fernet, "enc:" prefix)
        sa.Column("medical_history", sa.Text(), nullable=True),
        sa.Column("current_medications", sa.Text(), nullable=True),
        sa.Column("allergies", sa.Text(), nullable=True),
        sa.Column("previous_dental_treatment", sa.Text(), nullable=True),
        sa.Column("smoking_status", sa.String(20), nullable=True),
        sa.Column("alcohol_consumption", sa.String(20), nullable=True),
        sa.Column("pregnancy_status", sa.String(20), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_triage_assessments"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_triage_assessments_user_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["appointment_id"],
            ["appointments.id"],
            name="fk_triage_assessments_appointment_id_appointments",
        ),
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("appointment_id", sa.Integer(), nullable=False),
        sa.Column("triage_assessment_id", sa.Integer(), nullable=True),
        sa.Column("treatment_category", sa.String(20), nullable=False),
        sa.Column("accessibility_needs", sa.JSON(), nullable=True),
        sa.Column("medications", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allergies", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_dental_visit", sa.String(50), nullable=True),
        sa.Column("anxiety_level", sa.String(20), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column(
            "status", sa.String(20), nullable=False, server_default="pending_approval"
        ),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_bookings"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_bookings_user_id_users"
        ),
        sa.ForeignKeyConstraint(
            ["appointment_id"],
            ["appointments.id"],
            name="fk_bookings_appointment_id_appointments",
        ),
        sa.ForeignKeyConstraint(
            ["triage_assessment_id"],
            ["triage_assessments.id"],
            name="fk_bookings_triage_assessment_id_triage_assessments",
        ),
        sa.ForeignKeyConstraint(
            ["approved_by"], ["users.id"], name="fk_bookings_approved_by_users"
        ),
    )
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    # At most one open booking per appointment
    op.create_index(
        "uq_bookings_open_appointment",
        "bookings",
        ["appointment_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending_approval', 'approved')"),
        sqlite_where=sa.text("status IN ('pending_approval', 'approved')"),
    )

    # Audit logs table (append-only)
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("request_method", sa.String(10), nullable=True),
        sa.Column("request_path", sa.Text(), nullable=True),
        sa.Column("additional_data", sa.JSON(), nullable=True),
        sa.Column("nhs_compliance", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_audit_logs"),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_id", "audit_logs", ["resource_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("audit_logs")
    op.drop_table("bookings")
    op.drop_table("triage_assessments")
    op.drop_table("appointments")
    op.drop_table("sessions")
    op.drop_table("users")
    op.drop_table("dentists")
    op.drop_table("treatments")
    op.drop_table("practices")
