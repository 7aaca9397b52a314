from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskIn(BaseModel):
    """Body of POST/PUT /tasks.

    Every field is optional here so a missing name or deadline can be
    reported with the API's own 400 message instead of a validation dump.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    completed: Optional[bool] = None
    assigned_user: Optional[str] = Field(None, alias="assignedUser")
    assigned_user_name: Optional[str] = Field(None, alias="assignedUserName")

    @field_validator("name", "description", "assigned_user", "assigned_user_name")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v
