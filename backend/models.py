# models.py — Database models for the Sprintboard project tracker
# - UUID string primary keys
# - Two-role system (PM, MEMBER)
# - Project → Sprint → Task → SubTask hierarchy with cascading deletes
# - Append-only task activity log and per-user notification feed

import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, DateTime, Date, JSON, Boolean,
    Enum as SQLEnum, ForeignKey, Text, Index, Table,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, PyEnum):
    PM = "PM"
    MEMBER = "MEMBER"


class ProjectStatus(str, PyEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    COMPLETED = "completed"


class SprintStatus(str, PyEnum):
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TaskStatus(str, PyEnum):
    TO_DO = "TO_DO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class TaskPriority(str, PyEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ActivityType(str, PyEnum):
    CREATED = "created"
    ASSIGNED = "assigned"
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    COMMENTED = "commented"
    BUG = "bug"
    ASSET_ADDED = "asset_added"
    STATUS_CHANGED = "status_changed"
    SUBTASK_CREATED = "subtask_created"


class NotificationType(str, PyEnum):
    TASK_ASSIGNED = "task_assigned"
    STATUS_CHANGED = "status_changed"
    COMMENT = "comment"
    MENTION = "mention"
    DEADLINE = "deadline"


def enum_value(value):
    """Return the plain string of an enum member (or pass a string through)."""
    return value.value if isinstance(value, PyEnum) else value


# ============================================================
# USERS
# ============================================================

project_members = Table(
    "project_members",
    Base.metadata,
    Column("project_id", String, ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("joined_at", DateTime(timezone=True), default=utcnow, nullable=False),
)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    full_name = Column(String(255), nullable=False)
    title = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.MEMBER, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    refresh_token_hash = Column(String, nullable=True, index=True)  # sha256 of the current refresh secret
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    managed_projects = relationship("Project", back_populates="manager", foreign_keys="Project.manager_id")
    projects = relationship("Project", secondary=project_members, back_populates="members")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_user_role_active", "role", "is_active"),
    )


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    id = Column(String, primary_key=True, default=new_uuid)
    jti = Column(String, unique=True, nullable=False, index=True)  # JWT ID
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    revoked_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)  # When the token would have expired


# ============================================================
# PROJECTS & SPRINTS
# ============================================================

class Project(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(ProjectStatus), default=ProjectStatus.ACTIVE, nullable=False)
    manager_id = Column(String, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    manager = relationship("User", back_populates="managed_projects", foreign_keys=[manager_id])
    members = relationship("User", secondary=project_members, back_populates="projects", order_by="User.full_name")
    sprints = relationship(
        "Sprint", back_populates="project", cascade="all, delete-orphan", order_by="Sprint.start_date",
    )
    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="related_project")

    @property
    def member_ids(self):
        return {m.id for m in self.members}


class Sprint(Base):
    __tablename__ = "sprints"

    id = Column(String, primary_key=True, default=new_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(SQLEnum(SprintStatus), default=SprintStatus.PLANNED, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="sprints")
    tasks = relationship("Task", back_populates="sprint")


# ============================================================
# TASKS
# ============================================================

class Task(Base):
    __tablename__ = "tasks"

    id = Column(String, primary_key=True, default=new_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    sprint_id = Column(String, ForeignKey("sprints.id", ondelete="SET NULL"), nullable=True, index=True)  # NULL = backlog
    title = Column(String(255), nullable=False)
    date = Column(Date, nullable=True)
    priority = Column(SQLEnum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False)
    status = Column(SQLEnum(TaskStatus), default=TaskStatus.TO_DO, nullable=False, index=True)
    assigned_to = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = Column(String, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="tasks")
    sprint = relationship("Sprint", back_populates="tasks")
    assignee = relationship("User", foreign_keys=[assigned_to])
    creator = relationship("User", foreign_keys=[created_by])
    sub_tasks = relationship(
        "SubTask", back_populates="task", cascade="all, delete-orphan", order_by="SubTask.created_at.desc()",
    )
    assets = relationship("TaskAsset", back_populates="task", cascade="all, delete-orphan")
    activities = relationship(
        "TaskActivity", back_populates="task", cascade="all, delete-orphan",
        order_by="TaskActivity.created_at.desc()",
    )
    notifications = relationship("Notification", back_populates="related_task")

    __table_args__ = (
        Index("idx_task_project_sprint", "project_id", "sprint_id"),
        Index("idx_task_assignee_status", "assigned_to", "status"),
    )


class SubTask(Base):
    __tablename__ = "sub_tasks"

    id = Column(String, primary_key=True, default=new_uuid)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    date = Column(Date, nullable=True)
    tag = Column(String(100), nullable=True)
    is_completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    task = relationship("Task", back_populates="sub_tasks")


class TaskAsset(Base):
    """Uploaded image attached to a task"""
    __tablename__ = "task_assets"

    id = Column(String, primary_key=True, default=new_uuid)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String(500), nullable=False)
    uploaded_by = Column(String, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow)

    task = relationship("Task", back_populates="assets")
    uploader = relationship("User")


class TaskActivity(Base):
    """Audit trail for a task. Rows are never updated."""
    __tablename__ = "task_activities"

    id = Column(String, primary_key=True, default=new_uuid)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    type = Column(SQLEnum(ActivityType), nullable=False, index=True)
    content = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    extra_data = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    task = relationship("Task", back_populates="activities")
    user = relationship("User")

    __table_args__ = (
        Index("idx_activity_task_time", "task_id", "created_at"),
    )


# ============================================================
# NOTIFICATIONS
# ============================================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=new_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=True)
    type = Column(SQLEnum(NotificationType), default=NotificationType.TASK_ASSIGNED, nullable=False)
    related_task_id = Column(String, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    related_project_id = Column(String, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    # Relationships
    user = relationship("User", back_populates="notifications")
    related_task = relationship("Task", back_populates="notifications")
    related_project = relationship("Project", back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read"),
    )
