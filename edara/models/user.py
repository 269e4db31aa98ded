# edara/models/user.py
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional
import uuid
from edara.models.common import UserRole

class UserOut(BaseModel):
    id: str
    username: str
    full_name: str
    email: Optional[str] = None
    role: UserRole
    created_at: datetime

class UserCreate(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=6)
    full_name: str
    email: Optional[str] = None
    role: UserRole = "employee"

    def to_doc(self, password_hash: str) -> dict:
        return {
            "id": uuid.uuid4().hex,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc),
        }

class UserLogin(BaseModel):
    username: str
    password: str
