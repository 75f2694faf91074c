from django.test import SimpleTestCase, TestCase

from task.permission import TaskAccessContext, resolve_permissions, get_task_permissions
from utils.testing import make_user, make_project, make_task

# (global role, project role, is assignee) -> granted flags
# R read, W write, M edit meta, S edit status, D delete
PERMISSION_TABLE = [
    ("admin", None, False, "RWMSD"),
    ("admin", None, True, "RWMSD"),
    ("admin", "member", False, "RWMSD"),
    ("admin", "member", True, "RWMSD"),
    ("admin", "manager", False, "RWMSD"),
    ("admin", "manager", True, "RWMSD"),
    ("admin", "owner", False, "RWMSD"),
    ("admin", "owner", True, "RWMSD"),
    ("manager", None, False, ""),
    ("manager", None, True, "R"),
    ("manager", "member", False, "RWMSD"),
    ("manager", "member", True, "RWMSD"),
    ("manager", "manager", False, "RWMSD"),
    ("manager", "manager", True, "RWMSD"),
    ("manager", "owner", False, "RWMSD"),
    ("manager", "owner", True, "RWMSD"),
    ("member", None, False, ""),
    ("member", None, True, "RS"),
    ("member", "member", False, "RW"),
    ("member", "member", True, "RWS"),
    ("member", "manager", False, "RWMSD"),
    ("member", "manager", True, "RWMSD"),
    ("member", "owner", False, "RWMSD"),
    ("member", "owner", True, "RWMSD"),
]


class ResolvePermissionsTests(SimpleTestCase):

    def test_table_covers_every_combination(self):
        combos = {(g, p, a) for g, p, a, _ in PERMISSION_TABLE}
        self.assertEqual(len(combos), 24)

    def test_permission_table(self):
        for global_role, project_role, is_assignee, flags in PERMISSION_TABLE:
            with self.subTest(global_role=global_role, project_role=project_role, is_assignee=is_assignee):
                perms = resolve_permissions(TaskAccessContext(global_role, project_role, is_assignee))
                self.assertEqual(perms.can_read, "R" in flags)
                self.assertEqual(perms.can_write, "W" in flags)
                self.assertEqual(perms.can_edit_meta, "M" in flags)
                self.assertEqual(perms.can_edit_status, "S" in flags)
                self.assertEqual(perms.can_delete, "D" in flags)

    def test_reassign_needs_admin_manager_or_project_manager(self):
        cases = [
            ("admin", None, True),
            ("manager", None, True),
            ("member", "owner", True),
            ("member", "manager", True),
            ("member", "member", False),
            ("member", None, False),
        ]
        for global_role, project_role, expected in cases:
            with self.subTest(global_role=global_role, project_role=project_role):
                perms = resolve_permissions(TaskAccessContext(global_role, project_role, True))
                self.assertEqual(perms.can_reassign, expected)

    def test_subtask_work_needs_meta_rights_or_member_assignment(self):
        cases = [
            ("admin", None, False, True),
            ("manager", "member", False, True),
            ("manager", None, True, False),
            ("member", "manager", False, True),
            ("member", "member", True, True),
            ("member", None, True, True),
            ("member", "member", False, False),
        ]
        for global_role, project_role, is_assignee, expected in cases:
            with self.subTest(global_role=global_role, project_role=project_role, is_assignee=is_assignee):
                perms = resolve_permissions(TaskAccessContext(global_role, project_role, is_assignee))
                self.assertEqual(perms.can_work_subtasks, expected)

    def test_missing_global_role_is_treated_as_member(self):
        perms = resolve_permissions(TaskAccessContext(None, "member", False))
        self.assertEqual(perms.global_role, "member")
        self.assertFalse(perms.can_edit_meta)


class GetTaskPermissionsTests(TestCase):

    def test_reads_membership_and_assignment_from_database(self):
        owner = make_user("owner")
        worker = make_user("worker")
        project = make_project(owner, members={worker: "member"})
        task = make_task(project, assignees=[worker])

        perms = get_task_permissions(worker, task)
        self.assertTrue(perms.is_project_member)
        self.assertFalse(perms.is_project_manager)
        self.assertTrue(perms.is_assignee)
        self.assertTrue(perms.can_edit_status)

        perms = get_task_permissions(owner, task)
        self.assertTrue(perms.is_project_manager)
        self.assertFalse(perms.is_assignee)

    def test_superuser_without_profile_is_admin(self):
        root = make_user("root", is_superuser=True, is_staff=True)
        project = make_project(make_user("owner"))
        task = make_task(project)
        perms = get_task_permissions(root, task)
        self.assertEqual(perms.global_role, "admin")
        self.assertTrue(perms.can_delete)
