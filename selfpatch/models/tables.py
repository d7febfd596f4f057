"""
SQLAlchemy tables for SelfPatch.

Row classes mirror the entities in ``selfpatch.models.entities`` one to one.
Conversion between rows and entities lives in ``selfpatch.repositories.sql``;
services never see these classes.

Embedded collections (diagnostic responses, related bug ids) are stored as
JSON because they are always read and written together with their parent.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from selfpatch.models.base import Base


class BugRow(Base):
    """
    A tracked behavior.

    Data Classification: SENSITIVE
    - description: personal framing of the behavior
    """

    __tablename__ = "bugs"

    id = Column(Uuid, primary_key=True)
    slug = Column(String(100), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="identified", index=True)
    is_active = Column(Boolean, nullable=False, default=False)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    stable_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class AnalyticsEventRow(Base):
    """Append-only analytics event log."""

    __tablename__ = "analytics_events"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    event_type = Column(String(30), nullable=False)
    bug_id = Column(Uuid, nullable=True)
    fix_id = Column(Uuid, nullable=True)
    context = Column(String(20), nullable=True)
    day_of_week = Column(Integer, nullable=False)  # ISO: 1 = Monday
    hour_of_day = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_analytics_events_user_timestamp", "user_id", "timestamp"),
    )


class WeeklyDiagnosticRow(Base):
    """
    Weekly self-report.

    responses: JSON list of {"bug_id", "intensity", "primary_context"}.
    """

    __tablename__ = "weekly_diagnostics"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    week_starting = Column(Date, nullable=False)
    responses = Column(JSON, nullable=False, default=list)
    completed_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "week_starting", name="uq_weekly_diagnostics_user_week"),
    )


class CrashRow(Base):
    """
    Logged crash.

    Data Classification: SENSITIVE
    - note: free-text reflection
    """

    __tablename__ = "crashes"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    bug_id = Column(Uuid, nullable=True, index=True)
    note = Column(Text, nullable=True)
    crashed_at = Column(DateTime(timezone=True), nullable=False)
    rebooted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class DetectedPatternRow(Base):
    """
    Analytic finding.

    related_bug_ids: JSON list of UUID strings, order preserved.
    """

    __tablename__ = "detected_patterns"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False, index=True)
    pattern_type = Column(String(30), nullable=False)
    severity = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    related_bug_ids = Column(JSON, nullable=False, default=list)
    data_points = Column(Integer, nullable=False, default=0)
    detected_at = Column(DateTime(timezone=True), nullable=False)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    dismissed_at = Column(DateTime(timezone=True), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_detected_patterns_user_type_detected", "user_id", "pattern_type", "detected_at"),
    )


class VersionEntryRow(Base):
    """Version history entry."""

    __tablename__ = "version_entries"

    id = Column(Uuid, primary_key=True)
    user_id = Column(Uuid, nullable=False)
    version = Column(String(20), nullable=False)
    change_type = Column(String(20), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_version_entries_user_created", "user_id", "created_at"),
    )


class UserProfileRow(Base):
    """Streak, version and scheduling bookkeeping for a user."""

    __tablename__ = "user_profiles"

    id = Column(Uuid, primary_key=True)
    current_streak = Column(Integer, nullable=False, default=0)
    longest_streak = Column(Integer, nullable=False, default=0)
    last_engagement_date = Column(Date, nullable=True)
    streak_freeze_available = Column(Boolean, nullable=False, default=True)
    last_freeze_reset_date = Column(Date, nullable=True)
    last_diagnostics_run_at = Column(DateTime(timezone=True), nullable=True)
    last_pattern_shown_at = Column(DateTime(timezone=True), nullable=True)
    current_version = Column(String(20), nullable=False, default="1.0")
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
