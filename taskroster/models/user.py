from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship, synonym
from taskroster.database import Base
from taskroster.utils.dates import utcnow, isoformat
from taskroster.utils.ids import new_id


class PendingTask(Base):
    """One entry of a user's pendingTasks list."""

    __tablename__ = "user_pending_tasks"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    task_id = Column(String(32), primary_key=True)
    position = Column(Integer, nullable=False)

    # generic handle for the query layer
    value = synonym("task_id")


class User(Base):
    __tablename__ = "users"

    FIELDS = {
        "id": "id",
        "name": "name",
        "email": "email",
        "dateCreated": "date_created",
    }
    LIST_FIELDS = {"pendingTasks": "pending_entries"}

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    date_created = Column(DateTime, nullable=False, default=utcnow)

    pending_entries = relationship(
        PendingTask,
        order_by=PendingTask.position,
        cascade="all, delete-orphan",
    )

    @property
    def pending_tasks(self) -> list:
        return [entry.task_id for entry in self.pending_entries]

    def set_pending_tasks(self, task_ids):
        """Replace the list, keeping order and dropping repeated ids.

        Entries already present are reused so the flush only touches rows
        that actually changed.
        """
        existing = {entry.task_id: entry for entry in self.pending_entries}
        entries = []
        for position, task_id in enumerate(dict.fromkeys(task_ids)):
            entry = existing.get(task_id) or PendingTask(task_id=task_id)
            entry.position = position
            entries.append(entry)
        self.pending_entries = entries

    def add_pending_task(self, task_id) -> bool:
        if task_id in self.pending_tasks:
            return False
        position = max((entry.position for entry in self.pending_entries), default=-1) + 1
        self.pending_entries.append(PendingTask(task_id=task_id, position=position))
        return True

    def remove_pending_task(self, task_id) -> bool:
        for entry in self.pending_entries:
            if entry.task_id == task_id:
                self.pending_entries.remove(entry)
                return True
        return False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "pendingTasks": self.pending_tasks,
            "dateCreated": isoformat(self.date_created),
        }

    def __repr__(self):
        return f"<User {self.id} {self.email!r}>"
