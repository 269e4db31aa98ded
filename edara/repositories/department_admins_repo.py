# edara/repositories/department_admins_repo.py
from typing import Dict, Any, List
from edara.core.db import get_db

async def list_by_department(department_id: str) -> List[dict]:
    cur = get_db().department_admins.find({"department_id": department_id}).sort("admin_order", 1)
    return await cur.to_list(length=None)

async def list_by_departments(department_ids: List[str]) -> List[dict]:
    if not department_ids:
        return []
    return await get_db().department_admins.find({"department_id": {"$in": department_ids}}).to_list(length=None)

async def list_by_user(user_id: str) -> List[dict]:
    return await get_db().department_admins.find({"user_id": user_id}).to_list(length=None)

async def find_by_id(admin_id: str) -> dict | None:
    return await get_db().department_admins.find_one({"id": admin_id})

async def find_duplicate(department_id: str, user_id: str, is_purchase_admin: bool) -> dict | None:
    return await get_db().department_admins.find_one(
        {"department_id": department_id, "user_id": user_id, "is_purchase_admin": is_purchase_admin}
    )

async def insert(doc: dict):
    await get_db().department_admins.insert_one(doc)

async def update_by_id(admin_id: str, fields: Dict[str, Any]):
    await get_db().department_admins.update_one({"id": admin_id}, {"$set": fields})

async def delete_by_id(admin_id: str) -> int:
    res = await get_db().department_admins.delete_one({"id": admin_id})
    return res.deleted_count
