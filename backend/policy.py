# policy.py — Access policy for the Project → Sprint → Task → SubTask hierarchy
"""
Pure authorization decisions.

``decide(actor, action, resource)`` looks only at the actor (anything with
``id`` and ``role``) and attributes already loaded on the resource. It never
touches the database and never raises; ``authorize()`` turns a Deny into an
AuthorizationError at the HTTP boundary.

Child creation is expressed as an action on the parent: ADD_SPRINT and
ADD_TASK on a Project, ADD_SUBTASK and ADD_ASSET on a Task. Project creation
has no parent and is decided by ``project_creation()``.
"""
import logging
from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Optional

from exceptions import AuthorizationError
from models import (
    Project, Sprint, Task, SubTask, TaskAsset, Notification, UserRole, enum_value,
)

logger = logging.getLogger("sprintboard.policy")


class Action(str, PyEnum):
    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"
    VIEW_ACTIVITY = "view_activity"
    ADD_SPRINT = "add_sprint"
    ADD_TASK = "add_task"
    ADD_SUBTASK = "add_subtask"
    ADD_ASSET = "add_asset"


class DenyReason(str, PyEnum):
    NOT_PROJECT_MANAGER = "not project manager"
    NOT_ASSIGNED = "not assigned"
    NOT_MEMBER = "not a member"
    NOT_NOTIFICATION_OWNER = "not notification owner"
    NOT_TASK_CREATOR = "not task creator"
    NOT_PM_ROLE = "not a project manager role"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: DenyReason, message: str) -> Decision:
    return Decision(False, reason, message)


# ============================================================
# PREDICATES
# ============================================================

def is_pm(actor) -> bool:
    return enum_value(actor.role) == UserRole.PM.value


def manages(actor, project: Project) -> bool:
    return project.manager_id == actor.id


def is_member(actor, project: Project) -> bool:
    return actor.id in project.member_ids


def is_assignee(actor, task: Task) -> bool:
    return task.assigned_to is not None and task.assigned_to == actor.id


def is_creator(actor, task: Task) -> bool:
    return task.created_by == actor.id


def can_view_project(actor, project: Project) -> bool:
    return is_pm(actor) or manages(actor, project) or is_member(actor, project)


def can_view_task(actor, task: Task) -> bool:
    return (
        is_pm(actor)
        or is_assignee(actor, task)
        or manages(actor, task.project)
        or is_member(actor, task.project)
    )


def can_edit_task_content(actor, task: Task) -> bool:
    """Edit rule shared by subtasks and assets."""
    return is_pm(actor) or manages(actor, task.project) or is_assignee(actor, task)


# ============================================================
# PER-RESOURCE RULES
# ============================================================

def project_creation(actor) -> Decision:
    if is_pm(actor):
        return ALLOW
    return deny(DenyReason.NOT_PM_ROLE, "Only Project Managers can perform this action.")


def _project_decision(actor, action: Action, project: Project) -> Decision:
    if action == Action.VIEW:
        if can_view_project(actor, project):
            return ALLOW
        return deny(DenyReason.NOT_MEMBER, "You do not have access to this project.")
    if action == Action.ADD_TASK:
        if can_view_project(actor, project):
            return ALLOW
        return deny(DenyReason.NOT_MEMBER, "You do not have access to this project.")
    if action == Action.ADD_SPRINT:
        if manages(actor, project):
            return ALLOW
        return deny(DenyReason.NOT_PROJECT_MANAGER, "Only the project manager can create sprints.")
    if action in (Action.UPDATE, Action.DELETE):
        if manages(actor, project):
            return ALLOW
        verb = "update" if action == Action.UPDATE else "delete"
        return deny(DenyReason.NOT_PROJECT_MANAGER, f"Only the project manager can {verb} this project.")
    return deny(DenyReason.NOT_PROJECT_MANAGER, "Unsupported project action.")


def _sprint_decision(actor, action: Action, sprint: Sprint) -> Decision:
    project = sprint.project
    if action == Action.VIEW:
        if can_view_project(actor, project):
            return ALLOW
        return deny(DenyReason.NOT_MEMBER, "You do not have access to this sprint.")
    if action in (Action.UPDATE, Action.DELETE):
        if manages(actor, project):
            return ALLOW
        verb = "update" if action == Action.UPDATE else "delete"
        return deny(DenyReason.NOT_PROJECT_MANAGER, f"Only the project manager can {verb} sprints.")
    return deny(DenyReason.NOT_PROJECT_MANAGER, "Unsupported sprint action.")


def _task_decision(actor, action: Action, task: Task) -> Decision:
    if action == Action.VIEW:
        if can_view_task(actor, task):
            return ALLOW
        return deny(DenyReason.NOT_MEMBER, "You do not have access to this task.")
    if action == Action.VIEW_ACTIVITY:
        if can_view_task(actor, task) or is_creator(actor, task):
            return ALLOW
        return deny(DenyReason.NOT_MEMBER, "You do not have access to this task.")
    if action == Action.UPDATE:
        if can_edit_task_content(actor, task) or is_creator(actor, task):
            return ALLOW
        return deny(DenyReason.NOT_ASSIGNED, "You do not have permission to update this task.")
    if action == Action.DELETE:
        # Narrower than update: assignees may edit but not delete
        if is_pm(actor) or is_creator(actor, task):
            return ALLOW
        return deny(DenyReason.NOT_TASK_CREATOR, "You do not have permission to delete this task.")
    if action == Action.ADD_SUBTASK:
        if can_edit_task_content(actor, task):
            return ALLOW
        return deny(DenyReason.NOT_ASSIGNED, "You do not have permission to create subtasks for this task.")
    if action == Action.ADD_ASSET:
        if can_edit_task_content(actor, task):
            return ALLOW
        return deny(DenyReason.NOT_ASSIGNED, "You do not have permission to upload assets to this task.")
    return deny(DenyReason.NOT_ASSIGNED, "Unsupported task action.")


def _subtask_decision(actor, action: Action, sub_task: SubTask) -> Decision:
    task = sub_task.task
    if action == Action.VIEW:
        return _task_decision(actor, Action.VIEW, task)
    if action in (Action.UPDATE, Action.DELETE):
        if can_edit_task_content(actor, task):
            return ALLOW
        verb = "update" if action == Action.UPDATE else "delete"
        return deny(DenyReason.NOT_ASSIGNED, f"You do not have permission to {verb} this subtask.")
    return deny(DenyReason.NOT_ASSIGNED, "Unsupported subtask action.")


def _asset_decision(actor, action: Action, asset: TaskAsset) -> Decision:
    if action == Action.VIEW:
        return _task_decision(actor, Action.VIEW, asset.task)
    return _task_decision(actor, Action.ADD_ASSET, asset.task)


def _notification_decision(actor, action: Action, notification: Notification) -> Decision:
    # No role overrides ownership
    if notification.user_id == actor.id:
        return ALLOW
    if action == Action.DELETE:
        message = "You can only delete your own notifications."
    elif action == Action.UPDATE:
        message = "You can only mark your own notifications as read."
    else:
        message = "You can only view your own notifications."
    return deny(DenyReason.NOT_NOTIFICATION_OWNER, message)


_RULES = (
    (Project, _project_decision),
    (Sprint, _sprint_decision),
    (Task, _task_decision),
    (SubTask, _subtask_decision),
    (TaskAsset, _asset_decision),
    (Notification, _notification_decision),
)


def decide(actor, action: Action, resource) -> Decision:
    """Return Allow or Deny(reason) for ``actor`` performing ``action`` on ``resource``."""
    for resource_type, rule in _RULES:
        if isinstance(resource, resource_type):
            return rule(actor, action, resource)
    raise TypeError(f"No access policy for {type(resource).__name__}")


def authorize(decision: Decision, actor=None) -> None:
    """Raise AuthorizationError (403) for a Deny; no-op for Allow."""
    if decision:
        return
    logger.warning(
        f"Access denied ({decision.reason.value}) for user "
        f"{getattr(actor, 'id', '?')}: {decision.message}"
    )
    raise AuthorizationError.from_decision(decision)
