# tests/test_policy.py — Access decisions on in-memory objects (no database)
import pytest

from exceptions import AuthorizationError
from models import User, UserRole, Project, Sprint, Task, SubTask, TaskAsset, Notification
from policy import Action, DenyReason, authorize, decide, project_creation


def _user(uid: str, role: UserRole = UserRole.MEMBER) -> User:
    return User(id=uid, full_name=uid.title(), email=f"{uid}@sprintboard.io", role=role)


@pytest.fixture
def people():
    return {
        "pm": _user("pm", UserRole.PM),
        "other_pm": _user("other_pm", UserRole.PM),
        "member": _user("member"),
        "assignee": _user("assignee"),
        "creator": _user("creator"),
        "outsider": _user("outsider"),
    }


@pytest.fixture
def hierarchy(people):
    project = Project(id="p1", name="Apollo", manager_id="pm", members=[people["member"]])
    sprint = Sprint(id="s1", project=project, name="Sprint 1")
    task = Task(id="t1", project=project, title="Build", assigned_to="assignee", created_by="creator")
    sub_task = SubTask(id="st1", task=task, title="Step")
    asset = TaskAsset(id="a1", task=task, image_url="/storage/x.png", uploaded_by="pm")
    return {"project": project, "sprint": sprint, "task": task, "sub_task": sub_task, "asset": asset}


class TestProjectRules:
    def test_pm_reads_any_project(self, people, hierarchy):
        assert decide(people["other_pm"], Action.VIEW, hierarchy["project"])

    def test_pm_role_alone_cannot_mutate(self, people, hierarchy):
        for action in (Action.UPDATE, Action.DELETE, Action.ADD_SPRINT):
            decision = decide(people["other_pm"], action, hierarchy["project"])
            assert not decision
            assert decision.reason == DenyReason.NOT_PROJECT_MANAGER

    def test_manager_can_mutate(self, people, hierarchy):
        for action in (Action.UPDATE, Action.DELETE, Action.ADD_SPRINT, Action.ADD_TASK):
            assert decide(people["pm"], action, hierarchy["project"])

    def test_member_reads_but_cannot_update(self, people, hierarchy):
        assert decide(people["member"], Action.VIEW, hierarchy["project"])
        assert decide(people["member"], Action.ADD_TASK, hierarchy["project"])
        assert not decide(people["member"], Action.UPDATE, hierarchy["project"])

    def test_outsider_denied(self, people, hierarchy):
        decision = decide(people["outsider"], Action.VIEW, hierarchy["project"])
        assert not decision
        assert decision.reason == DenyReason.NOT_MEMBER

    def test_manager_id_grants_read_without_membership(self, people):
        # A MEMBER-role manager is never listed as a member of their own project
        project = Project(id="p2", name="Side", manager_id="member", members=[])
        assert decide(people["member"], Action.VIEW, project)

    def test_project_creation_requires_pm_role(self, people):
        assert project_creation(people["pm"])
        decision = project_creation(people["member"])
        assert not decision
        assert decision.reason == DenyReason.NOT_PM_ROLE


class TestSprintRules:
    def test_view_follows_project(self, people, hierarchy):
        assert decide(people["member"], Action.VIEW, hierarchy["sprint"])
        assert not decide(people["outsider"], Action.VIEW, hierarchy["sprint"])

    def test_only_manager_updates(self, people, hierarchy):
        assert decide(people["pm"], Action.UPDATE, hierarchy["sprint"])
        assert not decide(people["other_pm"], Action.DELETE, hierarchy["sprint"])
        assert not decide(people["member"], Action.UPDATE, hierarchy["sprint"])


class TestTaskRules:
    def test_assignee_reads_without_membership(self, people, hierarchy):
        assert decide(people["assignee"], Action.VIEW, hierarchy["task"])

    def test_creator_alone_reads_activity_but_not_task(self, people, hierarchy):
        task = hierarchy["task"]
        assert not decide(people["creator"], Action.VIEW, task)
        assert decide(people["creator"], Action.VIEW_ACTIVITY, task)

    def test_update_admits_creator_and_assignee(self, people, hierarchy):
        task = hierarchy["task"]
        assert decide(people["creator"], Action.UPDATE, task)
        assert decide(people["assignee"], Action.UPDATE, task)
        assert decide(people["other_pm"], Action.UPDATE, task)

    def test_member_cannot_update(self, people, hierarchy):
        decision = decide(people["member"], Action.UPDATE, hierarchy["task"])
        assert not decision
        assert decision.reason == DenyReason.NOT_ASSIGNED

    def test_delete_is_narrower_than_update(self, people, hierarchy):
        task = hierarchy["task"]
        decision = decide(people["assignee"], Action.DELETE, task)
        assert not decision
        assert decision.reason == DenyReason.NOT_TASK_CREATOR
        assert decide(people["creator"], Action.DELETE, task)
        assert decide(people["other_pm"], Action.DELETE, task)

    def test_outsider_denied(self, people, hierarchy):
        assert not decide(people["outsider"], Action.VIEW, hierarchy["task"])
        assert not decide(people["outsider"], Action.VIEW_ACTIVITY, hierarchy["task"])


class TestSubTaskAndAssetRules:
    def test_edit_inherits_from_task(self, people, hierarchy):
        sub_task = hierarchy["sub_task"]
        assert decide(people["assignee"], Action.UPDATE, sub_task)
        assert decide(people["pm"], Action.DELETE, sub_task)
        assert decide(people["other_pm"], Action.UPDATE, sub_task)

    def test_creator_cannot_edit_subtasks(self, people, hierarchy):
        decision = decide(people["creator"], Action.UPDATE, hierarchy["sub_task"])
        assert not decision
        assert decision.reason == DenyReason.NOT_ASSIGNED

    def test_add_subtask_and_asset(self, people, hierarchy):
        task = hierarchy["task"]
        assert decide(people["assignee"], Action.ADD_SUBTASK, task)
        assert decide(people["assignee"], Action.ADD_ASSET, task)
        assert not decide(people["member"], Action.ADD_SUBTASK, task)
        assert not decide(people["member"], Action.ADD_ASSET, task)

    def test_asset_view_uses_task_read(self, people, hierarchy):
        assert decide(people["member"], Action.VIEW, hierarchy["asset"])
        assert not decide(people["outsider"], Action.VIEW, hierarchy["asset"])


class TestNotificationRules:
    def test_owner_only(self, people):
        notif = Notification(id="n1", user_id="member", title="Hello")
        assert decide(people["member"], Action.UPDATE, notif)
        for actor in ("pm", "other_pm", "outsider"):
            decision = decide(people[actor], Action.DELETE, notif)
            assert not decision
            assert decision.reason == DenyReason.NOT_NOTIFICATION_OWNER


class TestAuthorize:
    def test_allow_is_noop(self, people, hierarchy):
        authorize(decide(people["pm"], Action.VIEW, hierarchy["project"]), people["pm"])

    def test_deny_raises_403_with_reason(self, people, hierarchy):
        with pytest.raises(AuthorizationError) as exc_info:
            authorize(decide(people["outsider"], Action.VIEW, hierarchy["project"]), people["outsider"])
        assert exc_info.value.status_code == 403
        assert exc_info.value.reason == "not a member"
        assert exc_info.value.message == "You do not have access to this project."

    def test_unknown_resource_type(self, people):
        with pytest.raises(TypeError):
            decide(people["pm"], Action.VIEW, object())
