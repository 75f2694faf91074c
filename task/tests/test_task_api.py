from urllib.parse import urlencode

from rest_framework import status
from rest_framework.test import APITestCase

from notification.models import Notification
from project.models import ProjectTag
from task.models import Task, TaskActivity, TaskList, DEFAULT_LIST_NAME
from utils.testing import make_user, make_project, make_task


class TaskApiTestCase(APITestCase):

    def setUp(self):
        self.admin = make_user("admin", role="admin")
        self.owner = make_user("owner", first_name="Olive", last_name="Owner")
        self.pm = make_user("pm")
        self.worker = make_user("worker")
        self.teammate = make_user("teammate")
        self.gmanager = make_user("gmanager", role="manager")
        self.outsider = make_user("outsider")

        self.project = make_project(self.owner, members={
            self.pm: "manager",
            self.worker: "member",
            self.teammate: "member",
            self.gmanager: "member",
        })
        self.task = make_task(self.project, assignees=[self.worker])

    def url(self, task=None, suffix=""):
        return f"/api/tasks/{(task or self.task).pk}/{suffix}"

    def put(self, user, body, task=None):
        self.client.force_authenticate(user)
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.put(self.url(task), body, format="json")

    def activity_types(self):
        return list(TaskActivity.objects.filter(task=self.task).values_list("type", flat=True))


class TaskDetailTests(TaskApiTestCase):

    def test_unauthenticated_is_401(self):
        response = self.client.get(self.url())
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response["WWW-Authenticate"], "Bearer")

    def test_missing_task_is_404(self):
        self.client.force_authenticate(self.owner)
        response = self.client.get("/api/tasks/999999/")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_outsider_is_forbidden(self):
        self.client.force_authenticate(self.outsider)
        response = self.client.get(self.url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json(), {"error": "Insufficient permissions"})

    def test_assignee_outside_project_can_read(self):
        stranger = make_user("stranger")
        self.task.assignees.add(stranger)
        self.client.force_authenticate(stranger)
        self.assertEqual(self.client.get(self.url()).status_code, status.HTTP_200_OK)

    def test_full_view_lists_project_members(self):
        self.client.force_authenticate(self.worker)
        data = self.client.get(self.url()).json()
        self.assertEqual(data["id"], self.task.pk)
        self.assertEqual(len(data["project"]["members"]), 5)
        self.assertEqual(data["assignees"][0]["userId"], self.worker.pk)
        self.assertIn("_count", data)

    def test_light_view_omits_members(self):
        self.client.force_authenticate(self.worker)
        data = self.client.get(self.url(), {"view": "light"}).json()
        self.assertNotIn("members", data["project"])

    def test_perf_adds_server_timing(self):
        self.client.force_authenticate(self.worker)
        response = self.client.get(self.url(), {"perf": "1"})
        self.assertTrue(response["Server-Timing"].startswith("total;dur="))

    def test_activity_is_newest_first(self):
        TaskActivity.objects.create(task=self.task, actor=self.owner, type="task.title_changed")
        TaskActivity.objects.create(task=self.task, actor=self.owner, type="task.status_changed")
        self.client.force_authenticate(self.worker)
        events = self.client.get(self.url(suffix="activity/")).json()["events"]
        self.assertEqual([e["type"] for e in events], ["task.status_changed", "task.title_changed"])


class TaskUpdatePermissionTests(TaskApiTestCase):

    def test_assignee_member_can_change_status(self):
        response = self.put(self.worker, {"status": "in_progress"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "in_progress")
        activity = TaskActivity.objects.get(task=self.task)
        self.assertEqual(activity.type, "task.status_changed")
        self.assertEqual(activity.metadata, {"from": "todo", "to": "in_progress"})
        self.assertEqual(activity.actor, self.worker)

    def test_member_status_with_tag_ids_is_rejected(self):
        tag = ProjectTag.objects.create(project=self.project, name="BUG")
        response = self.put(self.worker, {"status": "in_progress", "tagIds": [tag.pk]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["invalid"], ["tagIds"])
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, "todo")

    def test_assignee_member_cannot_archive(self):
        response = self.put(self.worker, {"status": "archived"})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, "todo")

    def test_non_assignee_member_cannot_change_status(self):
        response = self.put(self.teammate, {"status": "done"})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_non_assignee_member_can_edit_title(self):
        response = self.put(self.teammate, {"title": "Renamed"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.activity_types(), ["task.title_changed"])

    def test_member_cannot_reassign(self):
        response = self.put(self.worker, {"assigneeIds": [self.teammate.pk]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["invalid"], ["assigneeIds"])

    def test_global_manager_member_can_archive(self):
        response = self.put(self.gmanager, {"status": "archived"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_invalid_status(self):
        response = self.put(self.owner, {"status": "blocked"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json(), {"error": "Invalid status"})

    def test_outsider_cannot_write(self):
        response = self.put(self.outsider, {"title": "x"})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class TaskUpdateFieldTests(TaskApiTestCase):

    def test_sparse_patch_leaves_other_fields(self):
        self.task.description = "keep me"
        self.task.save()
        response = self.put(self.owner, {"priority": "high"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.task.refresh_from_db()
        self.assertEqual(self.task.priority, "high")
        self.assertEqual(self.task.description, "keep me")
        self.assertEqual(self.activity_types(), ["task.priority_changed"])

    def test_unchanged_value_records_nothing(self):
        response = self.put(self.owner, {"title": self.task.title})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.activity_types(), [])

    def test_reordered_assignees_are_not_a_change(self):
        self.task.assignees.set([self.worker, self.teammate])
        response = self.put(self.owner, {"assigneeIds": [self.teammate.pk, self.worker.pk]})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn("task.assignees_changed", self.activity_types())
        self.assertFalse(Notification.objects.exists())

    def test_new_assignee_gets_one_notification(self):
        response = self.put(self.owner, {"assigneeIds": [self.worker.pk, self.teammate.pk]})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        notification = Notification.objects.get()
        self.assertEqual(notification.user, self.teammate)
        self.assertEqual(notification.type, "task_assigned")
        self.assertEqual(notification.link, f"/tasks?taskId={self.task.pk}")
        self.assertIn(self.project.name, notification.message)
        self.assertIn("Olive Owner", notification.message)
        self.assertFalse(Notification.objects.filter(user=self.worker).exists())

        activity = TaskActivity.objects.get(task=self.task, type="task.assignees_changed")
        self.assertEqual(activity.metadata["to"], sorted([self.worker.pk, self.teammate.pk]))

    def test_actor_assigning_self_is_not_notified(self):
        self.put(self.owner, {"assigneeIds": [self.owner.pk]})
        self.assertFalse(Notification.objects.exists())

    def test_unknown_assignee_is_rejected(self):
        response = self.put(self.owner, {"assigneeIds": [999999]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_null_list_id_resolves_to_single_default_list(self):
        self.task.task_list = None
        self.task.save()
        TaskList.objects.filter(project=self.project).delete()

        first = self.put(self.owner, {"listId": None}).json()["listId"]
        second = self.put(self.owner, {"listId": None}).json()["listId"]

        self.assertIsNotNone(first)
        self.assertEqual(first, second)
        self.assertEqual(TaskList.objects.filter(project=self.project, name=DEFAULT_LIST_NAME).count(), 1)

    def test_blank_list_id_detaches(self):
        response = self.put(self.owner, {"listId": ""})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.json()["listId"])

    def test_list_id_from_other_project_is_rejected(self):
        other = make_project(self.owner, name="Other")
        foreign = TaskList.objects.create(project=other, name="Doing")
        response = self.put(self.owner, {"listId": str(foreign.pk)})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_move_records_list_ids(self):
        doing = TaskList.objects.create(project=self.project, name="Doing")
        previous = self.task.task_list_id
        self.put(self.pm, {"listId": doing.pk})
        activity = TaskActivity.objects.get(task=self.task)
        self.assertEqual(activity.metadata, {"fromListId": previous, "toListId": doing.pk})

    def test_foreign_tag_ids_are_rejected_and_task_untouched(self):
        other = make_project(self.owner, name="Other")
        foreign = ProjectTag.objects.create(project=other, name="OPS")
        response = self.put(self.owner, {"title": "Changed", "tagIds": [foreign.pk]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "Write report")
        self.assertFalse(self.task.tags.exists())

    def test_tag_ids_are_set(self):
        bug = ProjectTag.objects.create(project=self.project, name="BUG")
        ui = ProjectTag.objects.create(project=self.project, name="UI")
        response = self.put(self.owner, {"tagIds": [ui.pk, bug.pk]})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual({t["name"] for t in response.json()["tags"]}, {"BUG", "UI"})
        self.assertEqual(self.activity_types(), ["task.tags_changed"])

    def test_project_manager_sets_amount(self):
        response = self.put(self.pm, {"amountCents": 2500})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["amountCents"], 2500)

    def test_negative_amount_is_rejected(self):
        response = self.put(self.owner, {"amountCents": -1})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def put_form(self, user, pairs):
        self.client.force_authenticate(user)
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.put(
                self.url(), urlencode(pairs), content_type="application/x-www-form-urlencoded"
            )

    def test_form_encoded_update(self):
        response = self.put_form(self.worker, {"title": "Renamed", "status": "in_progress"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "Renamed")
        self.assertEqual(self.task.status, "in_progress")

    def test_form_encoded_assignees_keep_every_value(self):
        response = self.put_form(self.owner, [("assigneeIds", self.worker.pk), ("assigneeIds", self.teammate.pk)])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            set(self.task.assignees.values_list("pk", flat=True)), {self.worker.pk, self.teammate.pk}
        )


class TaskDeleteTests(TaskApiTestCase):

    def test_member_cannot_delete(self):
        self.client.force_authenticate(self.worker)
        response = self.client.delete(self.url())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Task.objects.filter(pk=self.task.pk).exists())

    def test_project_manager_deletes(self):
        self.client.force_authenticate(self.pm)
        response = self.client.delete(self.url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"success": True})
        self.assertFalse(Task.objects.filter(pk=self.task.pk).exists())


class TaskListTests(TaskApiTestCase):

    def test_archived_tasks_are_hidden_by_default(self):
        archived = make_task(self.project, title="Old", status="archived")
        self.client.force_authenticate(self.owner)

        ids = [t["id"] for t in self.client.get("/api/tasks/").json()["tasks"]]
        self.assertIn(self.task.pk, ids)
        self.assertNotIn(archived.pk, ids)

        ids = [t["id"] for t in self.client.get("/api/tasks/", {"status": "archived"}).json()["tasks"]]
        self.assertEqual(ids, [archived.pk])

    def test_response_shape(self):
        self.client.force_authenticate(self.owner)
        data = self.client.get("/api/tasks/", {"pageSize": 1}).json()
        self.assertEqual(data["page"], 1)
        self.assertEqual(data["pageSize"], 1)
        self.assertEqual(data["total"], 1)

    def test_outsider_sees_nothing(self):
        self.client.force_authenticate(self.outsider)
        self.assertEqual(self.client.get("/api/tasks/").json()["total"], 0)

    def test_admin_sees_everything(self):
        make_task(make_project(self.outsider, name="Elsewhere"))
        self.client.force_authenticate(self.admin)
        self.assertEqual(self.client.get("/api/tasks/").json()["total"], 2)

    def test_assigned_scope(self):
        make_task(self.project, title="Unassigned")
        self.client.force_authenticate(self.worker)
        data = self.client.get("/api/tasks/", {"scope": "assigned"}).json()
        self.assertEqual([t["id"] for t in data["tasks"]], [self.task.pk])

    def test_text_and_tag_filters(self):
        tagged = make_task(self.project, title="Login bug")
        tagged.tags.add(ProjectTag.objects.create(project=self.project, name="BUG"))
        self.client.force_authenticate(self.owner)

        data = self.client.get("/api/tasks/", {"q": "login"}).json()
        self.assertEqual([t["id"] for t in data["tasks"]], [tagged.pk])

        data = self.client.get("/api/tasks/", {"tag": " bug "}).json()
        self.assertEqual([t["id"] for t in data["tasks"]], [tagged.pk])

    def test_dashboard_view_shape(self):
        self.client.force_authenticate(self.owner)
        row = self.client.get("/api/tasks/", {"view": "dashboard"}).json()["tasks"][0]
        self.assertEqual(row["project"]["name"], self.project.name)
        self.assertNotIn("assignees", row)


class TaskCreateTests(TaskApiTestCase):

    def post(self, user, body):
        self.client.force_authenticate(user)
        with self.captureOnCommitCallbacks(execute=True):
            return self.client.post("/api/tasks/", body, format="json")

    def test_non_member_is_forbidden(self):
        response = self.post(self.outsider, {"title": "New", "projectId": self.project.pk})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json(), {"error": "Not a project member"})

    def test_admin_needs_no_membership(self):
        response = self.post(self.admin, {"title": "New", "projectId": self.project.pk})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_member_creates_in_default_list_and_notifies(self):
        response = self.post(self.worker, {
            "title": "New",
            "projectId": self.project.pk,
            "assigneeIds": [self.worker.pk, self.teammate.pk],
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        task = response.json()["task"]
        self.assertEqual(task["taskList"]["name"], DEFAULT_LIST_NAME)
        self.assertEqual(task["status"], "todo")
        self.assertEqual(
            list(Notification.objects.values_list("user_id", flat=True)), [self.teammate.pk]
        )

    def test_unknown_project(self):
        response = self.post(self.owner, {"title": "New", "projectId": 999999})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
