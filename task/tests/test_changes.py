from datetime import datetime, timezone

from django.test import SimpleTestCase, TestCase

from task.changes import diff, snapshot
from utils.testing import make_user, make_project, make_task


class DiffTests(SimpleTestCase):

    def test_only_changed_keys_produce_records(self):
        before = {"title": "Old", "priority": "low"}
        after = {"title": "New", "priority": "low"}
        changes = diff(before, after)
        self.assertEqual([c.as_dict() for c in changes], [
            {"type": "task.title_changed", "metadata": {"from": "Old", "to": "New"}},
        ])

    def test_keys_missing_from_either_side_are_ignored(self):
        self.assertEqual(diff({"title": "a"}, {"status": "done"}), [])

    def test_list_id_uses_its_own_metadata_keys(self):
        changes = diff({"listId": 1}, {"listId": None})
        self.assertEqual(changes[0].type, "task.list_changed")
        self.assertEqual(changes[0].metadata, {"fromListId": 1, "toListId": None})

    def test_amount_change_type(self):
        changes = diff({"amountCents": None}, {"amountCents": 1500})
        self.assertEqual(changes[0].type, "task.amount_changed")


class SnapshotTests(TestCase):

    def setUp(self):
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.project = make_project(self.alice, members={self.bob: "member"})

    def test_assignee_ids_are_sorted(self):
        task = make_task(self.project, assignees=[self.bob, self.alice])
        values = snapshot(task, {"assigneeIds"})
        self.assertEqual(values, {"assigneeIds": sorted([self.alice.pk, self.bob.pk])})

    def test_due_date_is_iso_utc(self):
        task = make_task(self.project, due_date=datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc))
        self.assertEqual(snapshot(task, {"dueDate"}), {"dueDate": "2026-03-01T09:30:00+00:00"})

    def test_only_requested_keys(self):
        task = make_task(self.project)
        self.assertEqual(set(snapshot(task, {"title", "status"})), {"title", "status"})
