"""Repository interfaces the HTTP layer and the synchronizer depend on.

The SQLAlchemy implementation lives in ``taskroster.repositories.sql``;
tests substitute in-memory fakes.
"""
from typing import Iterable, Optional, Protocol

from taskroster.models.task import Task
from taskroster.models.user import User
from taskroster.query import ListQuery


class TaskRepository(Protocol):
    def get(self, task_id: str) -> Optional[Task]: ...

    def add(self, task: Task) -> Task: ...

    def save(self, task: Task) -> Task: ...

    def delete(self, task: Task) -> None: ...

    def find(self, query: ListQuery) -> list: ...

    def count(self, where: dict) -> int: ...

    def assign(self, task_ids: Iterable[str], user_id: str, user_name: str) -> int:
        """Point every listed task that is not completed at the user."""
        ...

    def unassign(self, task_ids: Iterable[str]) -> int: ...

    def pending_ids_for_user(self, user_id: str) -> list:
        """Ids of the tasks assigned to the user that are not completed."""
        ...


class UserRepository(Protocol):
    def get(self, user_id: str) -> Optional[User]: ...

    def get_by_email(self, email: str, exclude_id: Optional[str] = None) -> Optional[User]: ...

    def add(self, user: User) -> User: ...

    def save(self, user: User) -> User: ...

    def delete(self, user: User) -> None: ...

    def find(self, query: ListQuery) -> list: ...

    def count(self, where: dict) -> int: ...

    def add_pending_task(self, user_id: str, task_id: str) -> bool: ...

    def remove_pending_task(self, user_id: str, task_id: str) -> bool: ...


class Store(Protocol):
    tasks: TaskRepository
    users: UserRepository

    def commit(self) -> None: ...

    def rollback(self) -> None: ...
