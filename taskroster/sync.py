"""Keeps ``Task.assignedUser`` and ``User.pendingTasks`` pointing at each other.

The ``plan_*`` functions are pure: they take the before/after state of a
mutation and return the operations needed to restore the assignment
invariant. :class:`Synchronizer` applies those operations to a store.

Invariant: a task that is not completed and has ``assignedUser == U.id``
is listed exactly once in ``U.pendingTasks``; a completed or unassigned
task is listed in no user's ``pendingTasks``.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddPendingTask:
    user_id: str
    task_id: str


@dataclass(frozen=True)
class RemovePendingTask:
    user_id: str
    task_id: str


@dataclass(frozen=True)
class AssignTasks:
    """Point the listed tasks that are not completed at one user."""
    task_ids: tuple
    user_id: str
    user_name: str


@dataclass(frozen=True)
class UnassignTasks:
    task_ids: tuple


def plan_task_sync(task_id: str, completed: bool, assigned_user: str,
                   previous_assigned_user: Optional[str] = None) -> list:
    """Operations after a task is created (no previous assignee) or replaced.

    The three rules are independent; all of them are evaluated.
    """
    ops = []
    if not completed and assigned_user:
        ops.append(AddPendingTask(assigned_user, task_id))
    if previous_assigned_user and previous_assigned_user != assigned_user:
        ops.append(RemovePendingTask(previous_assigned_user, task_id))
    if (completed or not assigned_user) and assigned_user:
        ops.append(RemovePendingTask(assigned_user, task_id))
    return ops


def plan_task_delete(task_id: str, assigned_user: str) -> list:
    if not assigned_user:
        return []
    return [RemovePendingTask(assigned_user, task_id)]


def plan_user_assignments(user_id: str, user_name: str, pending_tasks: Iterable[str]) -> list:
    pending_tasks = tuple(pending_tasks)
    if not pending_tasks:
        return []
    return [AssignTasks(pending_tasks, user_id, user_name)]


def plan_user_release(pending_tasks: Iterable[str], assigned_now: Iterable[str]) -> list:
    """Unassign tasks still pointing at the user that its list no longer names.

    ``assigned_now`` must be read after the assignment pass has been
    applied, so a task re-added to the list is never dropped.
    """
    keep = set(pending_tasks)
    drop = tuple(task_id for task_id in assigned_now if task_id not in keep)
    if not drop:
        return []
    return [UnassignTasks(drop)]


def plan_user_delete(assigned_now: Iterable[str]) -> list:
    assigned_now = tuple(assigned_now)
    if not assigned_now:
        return []
    return [UnassignTasks(assigned_now)]


class Synchronizer:
    def __init__(self, store):
        self.store = store

    def apply(self, ops: Iterable) -> None:
        for op in ops:
            logger.debug("sync %s", op)
            if isinstance(op, AddPendingTask):
                self.store.users.add_pending_task(op.user_id, op.task_id)
            elif isinstance(op, RemovePendingTask):
                self.store.users.remove_pending_task(op.user_id, op.task_id)
            elif isinstance(op, AssignTasks):
                self.store.tasks.assign(op.task_ids, op.user_id, op.user_name)
            elif isinstance(op, UnassignTasks):
                self.store.tasks.unassign(op.task_ids)
            else:
                raise TypeError(f"unknown sync operation: {op!r}")

    def task_written(self, task, previous_assigned_user: Optional[str] = None) -> None:
        self.apply(plan_task_sync(task.id, task.completed, task.assigned_user, previous_assigned_user))

    def task_deleted(self, task) -> None:
        self.apply(plan_task_delete(task.id, task.assigned_user))

    def user_written(self, user, replaced: bool = True) -> None:
        pending = user.pending_tasks
        self.apply(plan_user_assignments(user.id, user.name, pending))
        if replaced:
            assigned_now = self.store.tasks.pending_ids_for_user(user.id)
            self.apply(plan_user_release(pending, assigned_now))

    def user_deleted(self, user) -> None:
        self.apply(plan_user_delete(self.store.tasks.pending_ids_for_user(user.id)))
