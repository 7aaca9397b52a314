import logging
from typing import Iterable, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from taskroster.database import get_db
from taskroster.models.task import Task, UNASSIGNED
from taskroster.models.user import User
from taskroster.query import ListQuery, build_filter, build_sort
from taskroster.utils.ids import is_valid_id

logger = logging.getLogger(__name__)


class _SqlRepository:
    model = None

    def __init__(self, db: Session):
        self.db = db

    def get(self, record_id):
        if not is_valid_id(record_id):
            return None
        return self.db.get(self.model, record_id)

    def add(self, record):
        self.db.add(record)
        self.db.flush()
        return record

    def save(self, record):
        self.db.flush()
        return record

    def delete(self, record):
        self.db.delete(record)
        self.db.flush()

    def find(self, query: ListQuery) -> list:
        q = self.db.query(self.model).filter(build_filter(self.model, query.where))
        order = build_sort(self.model, query.sort)
        if order:
            q = q.order_by(*order)
        if query.skip:
            q = q.offset(query.skip)
        if query.limit:
            q = q.limit(query.limit)
        return q.all()

    def count(self, where: dict) -> int:
        return self.db.query(self.model).filter(build_filter(self.model, where)).count()


class SqlTaskRepository(_SqlRepository):
    model = Task

    def assign(self, task_ids: Iterable[str], user_id: str, user_name: str) -> int:
        task_ids = list(task_ids)
        if not task_ids:
            return 0
        updated = (
            self.db.query(Task)
            .filter(Task.id.in_(task_ids), Task.completed.is_(False))
            .update({Task.assigned_user: user_id, Task.assigned_user_name: user_name})
        )
        logger.debug("assigned %s task(s) to user=%s", updated, user_id)
        return updated

    def unassign(self, task_ids: Iterable[str]) -> int:
        task_ids = list(task_ids)
        if not task_ids:
            return 0
        updated = (
            self.db.query(Task)
            .filter(Task.id.in_(task_ids))
            .update({Task.assigned_user: "", Task.assigned_user_name: UNASSIGNED})
        )
        logger.debug("unassigned %s task(s)", updated)
        return updated

    def pending_ids_for_user(self, user_id: str) -> list:
        rows = (
            self.db.query(Task.id)
            .filter(Task.assigned_user == user_id, Task.completed.is_(False))
            .order_by(Task.date_created)
            .all()
        )
        return [row.id for row in rows]


class SqlUserRepository(_SqlRepository):
    model = User

    def get_by_email(self, email: str, exclude_id: Optional[str] = None) -> Optional[User]:
        q = self.db.query(User).filter(User.email == email.strip().lower())
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        return q.first()

    def add_pending_task(self, user_id: str, task_id: str) -> bool:
        user = self.get(user_id)
        if user is None or not user.add_pending_task(task_id):
            return False
        self.db.flush()
        return True

    def remove_pending_task(self, user_id: str, task_id: str) -> bool:
        user = self.get(user_id)
        if user is None or not user.remove_pending_task(task_id):
            return False
        self.db.flush()
        return True


class SqlStore:
    """Both repositories over one session; one commit per request."""

    def __init__(self, db: Session):
        self.db = db
        self.tasks = SqlTaskRepository(db)
        self.users = SqlUserRepository(db)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()


def get_store(db: Session = Depends(get_db)) -> SqlStore:
    return SqlStore(db)
