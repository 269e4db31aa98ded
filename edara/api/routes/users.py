# edara/api/routes/users.py
from fastapi import APIRouter, HTTPException, Depends
from edara.api.deps import require_role
from edara.core.db import get_db
from edara.core.security import hash_password
from edara.models.user import UserCreate
from edara.utils.mongo_helpers import clean_doc

router = APIRouter()

@router.post("")
async def create_user(payload: UserCreate, current=Depends(require_role(["admin"]))):
    db = get_db()
    if await db.users.find_one({"username": payload.username}):
        raise HTTPException(409, "Username already registered")
    user = payload.to_doc(hash_password(payload.password))
    await db.users.insert_one(user)
    return clean_doc(user)

@router.get("")
async def list_users(current=Depends(require_role(["admin"]))):
    return clean_doc(await get_db().users.find().sort("full_name", 1).to_list(1000))
