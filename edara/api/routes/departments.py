# edara/api/routes/departments.py
import logging
from fastapi import APIRouter, Depends, HTTPException
from edara.api.deps import get_current_user, require_role
from edara.core.db import get_db
from edara.models.department import Department, DepartmentCreate, DepartmentAdmin, DepartmentAdminCreate, DepartmentAdminUpdate
from edara.repositories import department_admins_repo as admins_repo
from edara.utils.mongo_helpers import clean_doc

logger = logging.getLogger(__name__)

router = APIRouter()

async def _department_or_404(department_id: str) -> dict:
    dept = await get_db().departments.find_one({"id": department_id})
    if not dept:
        raise HTTPException(404, "Department not found")
    return dept

@router.get("")
async def get_departments(current=Depends(get_current_user)):
    return clean_doc(await get_db().departments.find().sort("name", 1).to_list(1000))

@router.post("")
async def create_department(payload: DepartmentCreate, current=Depends(require_role(["admin"]))):
    db = get_db()
    if await db.departments.find_one({"name": payload.name}):
        raise HTTPException(409, "Department already exists")
    dept = Department(**payload.model_dump()).model_dump()
    await db.departments.insert_one(dept)
    return clean_doc(dept)


# ============================
#   Roster de aprobadores
# ============================

@router.get("/{department_id}/admins")
async def list_admins(department_id: str, current=Depends(get_current_user)):
    await _department_or_404(department_id)
    admins = await admins_repo.list_by_department(department_id)
    users = await get_db().users.find({"id": {"$in": [a["user_id"] for a in admins]}}).to_list(length=None)
    names = {u["id"]: u.get("full_name") for u in users}
    return [{**clean_doc(a), "user_name": names.get(a["user_id"])} for a in admins]

@router.post("/{department_id}/admins")
async def add_admin(department_id: str, payload: DepartmentAdminCreate, current=Depends(require_role(["admin"]))):
    await _department_or_404(department_id)
    if not await get_db().users.find_one({"id": payload.user_id}):
        raise HTTPException(400, "User not found")
    if await admins_repo.find_duplicate(department_id, payload.user_id, payload.is_purchase_admin):
        raise HTTPException(409, "User is already in this department roster with the same role")
    entry = DepartmentAdmin(department_id=department_id, **payload.model_dump()).model_dump()
    await admins_repo.insert(entry)
    logger.info("Roster: user %s added to department %s at order %s (purchase=%s)",
                payload.user_id, department_id, payload.admin_order, payload.is_purchase_admin)
    return clean_doc(entry)

@router.patch("/{department_id}/admins/{admin_id}")
async def update_admin(department_id: str, admin_id: str, payload: DepartmentAdminUpdate,
                       current=Depends(require_role(["admin"]))):
    entry = await admins_repo.find_by_id(admin_id)
    if not entry or entry["department_id"] != department_id:
        raise HTTPException(404, "Roster entry not found")
    fields = payload.model_dump(exclude_none=True)
    if "is_purchase_admin" in fields and fields["is_purchase_admin"] != entry.get("is_purchase_admin"):
        if await admins_repo.find_duplicate(department_id, entry["user_id"], fields["is_purchase_admin"]):
            raise HTTPException(409, "User is already in this department roster with the same role")
    if fields:
        await admins_repo.update_by_id(admin_id, fields)
    return clean_doc(await admins_repo.find_by_id(admin_id))

@router.delete("/{department_id}/admins/{admin_id}")
async def remove_admin(department_id: str, admin_id: str, current=Depends(require_role(["admin"]))):
    entry = await admins_repo.find_by_id(admin_id)
    if not entry or entry["department_id"] != department_id:
        raise HTTPException(404, "Roster entry not found")
    await admins_repo.delete_by_id(admin_id)
    logger.info("Roster: entry %s removed from department %s", admin_id, department_id)
    return {"ok": True}
