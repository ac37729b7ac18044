# dispatcher.py — Task activity log & notification fan-out
"""
Side effects of task state transitions.

Callers first capture a ``TaskSnapshot`` before mutating, then build a
``TaskChange`` from the old and new snapshots and hand it to
``ActivityDispatcher.on_update``. The dispatcher only adds rows to the
request's session; the router commits once, so the mutation, its activity
entries and its notifications land in the same transaction.

Each rule is independent: a single update that changes both status and
assignee produces two activities and up to three notifications.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    Notification, NotificationType, Project, SubTask, Task, TaskActivity,
    TaskAsset, ActivityType, TaskStatus, User, enum_value,
)

logger = logging.getLogger("sprintboard.dispatcher")


@dataclass(frozen=True)
class TaskSnapshot:
    status: Optional[str]
    assigned_to: Optional[str]

    @classmethod
    def of(cls, task: Task) -> "TaskSnapshot":
        return cls(status=enum_value(task.status), assigned_to=task.assigned_to)


@dataclass(frozen=True)
class TaskChange:
    """What changed between two snapshots of the same task."""
    old_status: Optional[str]
    new_status: Optional[str]
    old_assigned_to: Optional[str]
    new_assigned_to: Optional[str]

    @classmethod
    def diff(cls, previous: TaskSnapshot, current: TaskSnapshot) -> "TaskChange":
        return cls(
            old_status=previous.status,
            new_status=current.status,
            old_assigned_to=previous.assigned_to,
            new_assigned_to=current.assigned_to,
        )

    @property
    def status_changed(self) -> bool:
        return self.old_status != self.new_status

    @property
    def reassigned(self) -> bool:
        return self.old_assigned_to != self.new_assigned_to

    @property
    def completed(self) -> bool:
        return self.status_changed and self.new_status == TaskStatus.COMPLETED.value

    def __bool__(self) -> bool:
        return self.status_changed or self.reassigned


class ActivityDispatcher:
    """Writes TaskActivity and Notification rows on behalf of ``actor``."""

    def __init__(self, db: AsyncSession, actor):
        self.db = db
        self.actor = actor

    # --- row builders ---

    def _activity(self, task: Task, activity_type: ActivityType, content: str, metadata: dict = None) -> TaskActivity:
        entry = TaskActivity(
            task_id=task.id,
            user_id=self.actor.id,
            type=activity_type,
            content=content,
            extra_data=metadata,
        )
        self.db.add(entry)
        return entry

    def _notify(
        self, user_id: str, title: str, message: str, notification_type: NotificationType,
        task_id: str = None, project_id: str = None,
    ) -> Notification:
        notif = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            related_task_id=task_id,
            related_project_id=project_id,
            is_read=False,
        )
        self.db.add(notif)
        logger.debug(f"Queued {notification_type.value} notification for user {user_id}")
        return notif

    # --- transition rules ---

    def on_create(self, task: Task) -> list:
        rows = [self._activity(task, ActivityType.CREATED, f"Task created: {task.title}")]
        if task.assigned_to:
            rows.append(self._notify(
                task.assigned_to,
                "New Task Assigned",
                f"You have been assigned to task: {task.title}",
                NotificationType.TASK_ASSIGNED,
                task_id=task.id,
                project_id=task.project_id,
            ))
        return rows

    def on_update(self, task: Task, change: TaskChange, project: Project = None, assignee: User = None) -> list:
        """Apply the status and reassignment rules for one update.

        ``project`` defaults to ``task.project`` and must be loaded; ``assignee``
        is the new assignee's User row, used only for the activity text.
        """
        project = project if project is not None else task.project
        rows: List = []

        if change.status_changed:
            rows.append(self._activity(
                task,
                ActivityType.STATUS_CHANGED,
                f"Status changed from {change.old_status} to {change.new_status}",
                metadata={"old_status": change.old_status, "new_status": change.new_status},
            ))
            if task.assigned_to:
                rows.append(self._notify(
                    task.assigned_to,
                    "Task Status Updated",
                    f"Task '{task.title}' status changed to {change.new_status}",
                    NotificationType.STATUS_CHANGED,
                    task_id=task.id,
                ))
            # Second, independent notification for the manager; never deduplicated
            if change.completed and project.manager_id:
                rows.append(self._notify(
                    project.manager_id,
                    "Task Completed",
                    f"Task '{task.title}' has been marked as COMPLETED.",
                    NotificationType.STATUS_CHANGED,
                    task_id=task.id,
                    project_id=project.id,
                ))

        if change.reassigned:
            if change.new_assigned_to:
                who = assignee.full_name if assignee is not None else f"user ID: {change.new_assigned_to}"
                content = f"Task assigned to {who}"
            else:
                content = "Task unassigned"
            rows.append(self._activity(
                task,
                ActivityType.ASSIGNED,
                content,
                metadata={"old_assigned_to": change.old_assigned_to, "new_assigned_to": change.new_assigned_to},
            ))
            if change.new_assigned_to:
                rows.append(self._notify(
                    change.new_assigned_to,
                    "Task Assigned",
                    f"You have been assigned to task: {task.title}",
                    NotificationType.TASK_ASSIGNED,
                    task_id=task.id,
                    project_id=task.project_id,
                ))

        return rows

    def on_asset_upload(self, task: Task, asset: TaskAsset) -> list:
        return [self._activity(
            task,
            ActivityType.ASSET_ADDED,
            f"Image uploaded: {asset.image_url}",
            metadata={"asset_url": asset.image_url},
        )]

    def on_subtask_create(self, task: Task, sub_task: SubTask) -> list:
        # Logged on the parent task's stream
        return [self._activity(
            task,
            ActivityType.SUBTASK_CREATED,
            f"Subtask '{sub_task.title}' added to task: {task.title}",
            metadata={"sub_task_id": sub_task.id},
        )]

    def on_members_added(self, project: Project, user_ids: Iterable[str]) -> list:
        return [
            self._notify(
                user_id,
                "Project Invitation",
                f"You have been added to project: {project.name}",
                NotificationType.MENTION,
                project_id=project.id,
            )
            for user_id in user_ids
        ]
