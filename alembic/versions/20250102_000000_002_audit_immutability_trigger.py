"""Make audit_logs append-only.

Revision ID: 002_audit_immutability
Revises: 001
Create Date: 2025-01-02 00:00:00.000000

PostgreSQL only. SQLite test databases are built from the models and
rely on the application never issuing UPDATE or DELETE against
audit_logs.
"""

from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_audit_immutability"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

REJECT_FUNCTION = """
CREATE OR REPLACE FUNCTION audit_logs_reject_change()
RETURNS TRIGGER AS $$
BEGIN
    RAISE EXCEPTION 'audit_logs is append-only: % of entry % rejected', TG_OP, OLD.id
        USING ERRCODE = 'insufficient_privilege';
END;
$$ LANGUAGE plpgsql
"""


def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return

    op.execute(REJECT_FUNCTION)
    op.execute("DROP TRIGGER IF EXISTS audit_logs_append_only ON audit_logs")
    op.execute(
        """
        CREATE TRIGGER audit_logs_append_only
        BEFORE UPDATE OR DELETE ON audit_logs
        FOR EACH ROW EXECUTE FUNCTION audit_logs_reject_change()
        """
    )
    op.execute(
        "COMMENT ON TABLE audit_logs IS "
        "'Append-only request audit trail; UPDATE and DELETE are rejected by trigger'"
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return

    op.execute("COMMENT ON TABLE audit_logs IS NULL")
    op.execute("DROP TRIGGER IF EXISTS audit_logs_append_only ON audit_logs")
    op.execute("DROP FUNCTION IF EXISTS audit_logs_reject_change()")
