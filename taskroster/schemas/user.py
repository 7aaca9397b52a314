from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class UserIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email: Optional[EmailStr] = None
    pending_tasks: Optional[List[str]] = Field(None, alias="pendingTasks")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        # blank counts as missing so the handler can say which fields are required
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v
