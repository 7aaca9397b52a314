from sqlalchemy import Column, String, Text, Boolean, DateTime
from taskroster.database import Base
from taskroster.utils.dates import utcnow, isoformat
from taskroster.utils.ids import new_id

UNASSIGNED = "unassigned"


class Task(Base):
    __tablename__ = "tasks"

    # wire name -> attribute, used by the query layer for where/sort/select
    FIELDS = {
        "id": "id",
        "name": "name",
        "description": "description",
        "deadline": "deadline",
        "completed": "completed",
        "assignedUser": "assigned_user",
        "assignedUserName": "assigned_user_name",
        "dateCreated": "date_created",
    }
    LIST_FIELDS = {}

    id = Column(String(32), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    deadline = Column(DateTime, nullable=False)
    completed = Column(Boolean, nullable=False, default=False, index=True)
    assigned_user = Column(String, nullable=False, default="", index=True)
    assigned_user_name = Column(String, nullable=False, default=UNASSIGNED)
    date_created = Column(DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "deadline": isoformat(self.deadline),
            "completed": bool(self.completed),
            "assignedUser": self.assigned_user,
            "assignedUserName": self.assigned_user_name,
            "dateCreated": isoformat(self.date_created),
        }

    def __repr__(self):
        return f"<Task {self.id} {self.name!r} assigned_user={self.assigned_user!r} completed={self.completed}>"
