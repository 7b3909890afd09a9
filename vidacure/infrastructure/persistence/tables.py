"""SQLAlchemy table definitions - dialect-agnostic (works with SQLite and PostgreSQL)."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.types import JSON

# Metadata object for all tables
metadata = MetaData()

# ============================================================================
# ACCOUNTS TABLE (one identity index for patients and doctors)
# ============================================================================
accounts_table = Table(
    "accounts",
    metadata,
    Column("id", String, primary_key=True),  # UUID as string
    Column("ssn_hash", String(64), nullable=False),  # HMAC-SHA256 hex
    Column("role", String(16), nullable=False),  # Role as string
    Column("name", String(255), nullable=False),
    Column("given_name", String(255), nullable=False, default=""),
    Column("family_name", String(255), nullable=False, default=""),
    Column("status", String(32), nullable=False, default="active"),
    Column("has_completed_onboarding", Boolean, nullable=False, default=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("last_login_at", DateTime(timezone=True), nullable=True),
    UniqueConstraint("ssn_hash", name="uq_accounts_ssn_hash"),
)

Index("ix_accounts_role", accounts_table.c.role)


# ============================================================================
# AUDIT LOGS TABLE
# ============================================================================
audit_logs_table = Table(
    "audit_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("account_id", String, nullable=True),  # No FK: failed logins have no account
    Column("role", String(16), nullable=True),
    Column("action", String(64), nullable=False),
    Column("resource", String(64), nullable=False),
    Column("resource_id", String, nullable=True),
    Column("ip_address", String(64), nullable=True),
    Column("user_agent", Text, nullable=True),
    Column("success", Boolean, nullable=False),
    Column("error_message", Text, nullable=True),
    Column("metadata", JSON, nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

Index("ix_audit_logs_account_id", audit_logs_table.c.account_id)
Index("ix_audit_logs_action_created_at", audit_logs_table.c.action, audit_logs_table.c.created_at)
