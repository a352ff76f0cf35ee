"""Initial schema: employees, attendance sessions, approval workflows, cash advances

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    is_sqlite = bind.dialect.name == "sqlite"
    ts_default = sa.text("CURRENT_TIMESTAMP") if is_sqlite else sa.text("now()")
    false_default = sa.text("0") if is_sqlite else sa.text("false")

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("emp_code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="EMPLOYEE"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1") if is_sqlite else sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_employees_id"), "employees", ["id"], unique=False)
    op.create_index(op.f("ix_employees_emp_code"), "employees", ["emp_code"], unique=True)

    op.create_table(
        "approval_workflows",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("subject_kind", sa.String(length=20), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("level1_status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("level1_reviewer_id", sa.Integer(), nullable=True),
        sa.Column("level1_comment", sa.Text(), nullable=True),
        sa.Column("level1_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("level2_status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("level2_reviewer_id", sa.Integer(), nullable=True),
        sa.Column("level2_comment", sa.Text(), nullable=True),
        sa.Column("level2_decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("final_status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["level1_reviewer_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["level2_reviewer_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subject_kind", "subject_id", name="uq_approval_workflows_subject"),
    )
    op.create_index(op.f("ix_approval_workflows_id"), "approval_workflows", ["id"], unique=False)
    op.create_index(op.f("ix_approval_workflows_employee_id"), "approval_workflows", ["employee_id"], unique=False)
    op.create_index(op.f("ix_approval_workflows_final_status"), "approval_workflows", ["final_status"], unique=False)
    op.create_index("ix_approval_workflows_kind_final", "approval_workflows", ["subject_kind", "final_status"], unique=False)

    op.create_table(
        "attendance_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("punch_in_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("punch_out_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="OPEN"),
        sa.Column("is_overtime_marked", sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column("is_overtime_approved", sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column("overtime_comment", sa.Text(), nullable=True),
        sa.Column("overtime_request_id", sa.Integer(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("modified_by", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["overtime_request_id"], ["approval_workflows.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"]),
        sa.ForeignKeyConstraint(["modified_by"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attendance_sessions_id"), "attendance_sessions", ["id"], unique=False)
    op.create_index(op.f("ix_attendance_sessions_employee_id"), "attendance_sessions", ["employee_id"], unique=False)
    op.create_index(op.f("ix_attendance_sessions_work_date"), "attendance_sessions", ["work_date"], unique=False)
    op.create_index(
        op.f("ix_attendance_sessions_overtime_request_id"), "attendance_sessions", ["overtime_request_id"], unique=False
    )
    # At most one open session per employee
    op.create_index(
        "uq_attendance_sessions_one_open",
        "attendance_sessions",
        ["employee_id"],
        unique=True,
        sqlite_where=sa.text("punch_out_at IS NULL"),
        postgresql_where=sa.text("punch_out_at IS NULL"),
    )
    # At most one overtime-marked session per employee and work date
    op.create_index(
        "uq_attendance_sessions_one_overtime_per_day",
        "attendance_sessions",
        ["employee_id", "work_date"],
        unique=True,
        sqlite_where=sa.text("is_overtime_marked = 1"),
        postgresql_where=sa.text("is_overtime_marked"),
    )

    op.create_table(
        "attendance_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=30), nullable=False),
        sa.Column("event_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["session_id"], ["attendance_sessions.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_attendance_events_id"), "attendance_events", ["id"], unique=False)
    op.create_index(op.f("ix_attendance_events_session_id"), "attendance_events", ["session_id"], unique=False)
    op.create_index(op.f("ix_attendance_events_employee_id"), "attendance_events", ["employee_id"], unique=False)

    op.create_table(
        "cash_advances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("advance_type", sa.String(length=30), nullable=False, server_default="CASH_ADVANCE"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("purpose", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("workflow_id", sa.Integer(), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["workflow_id"], ["approval_workflows.id"]),
        sa.CheckConstraint("amount > 0", name="check_cash_advance_amount_positive"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_cash_advances_id"), "cash_advances", ["id"], unique=False)
    op.create_index(op.f("ix_cash_advances_employee_id"), "cash_advances", ["employee_id"], unique=False)
    op.create_index(op.f("ix_cash_advances_workflow_id"), "cash_advances", ["workflow_id"], unique=False)

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("leave_type", sa.String(length=20), nullable=False),
        sa.Column("from_date", sa.Date(), nullable=False),
        sa.Column("to_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("from_date <= to_date", name="check_from_date_le_to_date"),
    )
    op.create_index(op.f("ix_leave_requests_id"), "leave_requests", ["id"], unique=False)
    op.create_index(op.f("ix_leave_requests_employee_id"), "leave_requests", ["employee_id"], unique=False)
    op.create_index("ix_leave_requests_employee_dates", "leave_requests", ["employee_id", "from_date", "to_date"], unique=False)

    op.create_table(
        "work_schedules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("schedule_date", sa.Date(), nullable=False),
        sa.Column("is_rest_day", sa.Boolean(), nullable=False, server_default=false_default),
        sa.Column("shift_label", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=ts_default, nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "schedule_date", name="uq_work_schedule_employee_date"),
    )
    op.create_index(op.f("ix_work_schedules_id"), "work_schedules", ["id"], unique=False)
    op.create_index(op.f("ix_work_schedules_employee_id"), "work_schedules", ["employee_id"], unique=False)
    op.create_index(op.f("ix_work_schedules_schedule_date"), "work_schedules", ["schedule_date"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("entity_type", sa.String(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("meta_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["actor_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_audit_logs_id"), table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index(op.f("ix_work_schedules_schedule_date"), table_name="work_schedules")
    op.drop_index(op.f("ix_work_schedules_employee_id"), table_name="work_schedules")
    op.drop_index(op.f("ix_work_schedules_id"), table_name="work_schedules")
    op.drop_table("work_schedules")
    op.drop_index("ix_leave_requests_employee_dates", table_name="leave_requests")
    op.drop_index(op.f("ix_leave_requests_employee_id"), table_name="leave_requests")
    op.drop_index(op.f("ix_leave_requests_id"), table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index(op.f("ix_cash_advances_workflow_id"), table_name="cash_advances")
    op.drop_index(op.f("ix_cash_advances_employee_id"), table_name="cash_advances")
    op.drop_index(op.f("ix_cash_advances_id"), table_name="cash_advances")
    op.drop_table("cash_advances")
    op.drop_index(op.f("ix_attendance_events_employee_id"), table_name="attendance_events")
    op.drop_index(op.f("ix_attendance_events_session_id"), table_name="attendance_events")
    op.drop_index(op.f("ix_attendance_events_id"), table_name="attendance_events")
    op.drop_table("attendance_events")
    op.drop_index("uq_attendance_sessions_one_overtime_per_day", table_name="attendance_sessions")
    op.drop_index("uq_attendance_sessions_one_open", table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_overtime_request_id"), table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_work_date"), table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_employee_id"), table_name="attendance_sessions")
    op.drop_index(op.f("ix_attendance_sessions_id"), table_name="attendance_sessions")
    op.drop_table("attendance_sessions")
    op.drop_index("ix_approval_workflows_kind_final", table_name="approval_workflows")
    op.drop_index(op.f("ix_approval_workflows_final_status"), table_name="approval_workflows")
    op.drop_index(op.f("ix_approval_workflows_employee_id"), table_name="approval_workflows")
    op.drop_index(op.f("ix_approval_workflows_id"), table_name="approval_workflows")
    op.drop_table("approval_workflows")
    op.drop_index(op.f("ix_employees_emp_code"), table_name="employees")
    op.drop_index(op.f("ix_employees_id"), table_name="employees")
    op.drop_table("employees")
