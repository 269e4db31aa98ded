# edara/models/department.py
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional
import uuid

class Department(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class DepartmentCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""

class DepartmentAdmin(BaseModel):
    """Entrada del roster de aprobadores. Varios admins pueden compartir admin_order."""
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    department_id: str
    user_id: str
    admin_order: int = Field(default=0, ge=0)
    is_purchase_admin: bool = False
    requires_cost_center: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class DepartmentAdminCreate(BaseModel):
    user_id: str
    admin_order: int = Field(default=0, ge=0)
    is_purchase_admin: bool = False
    requires_cost_center: bool = False

class DepartmentAdminUpdate(BaseModel):
    admin_order: Optional[int] = Field(default=None, ge=0)
    is_purchase_admin: Optional[bool] = None
    requires_cost_center: Optional[bool] = None

class CostCenter(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    cost_center_code: str
    cost_center_name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class CostCenterCreate(BaseModel):
    cost_center_code: str = Field(min_length=1)
    cost_center_name: str = Field(min_length=1)
    description: Optional[str] = None
    is_active: bool = True
