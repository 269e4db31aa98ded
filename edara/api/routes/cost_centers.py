# edara/api/routes/cost_centers.py
from fastapi import APIRouter, Depends, HTTPException
from edara.api.deps import get_current_user, require_role
from edara.core.db import get_db
from edara.models.department import CostCenter, CostCenterCreate
from edara.utils.mongo_helpers import clean_doc

router = APIRouter()

@router.get("")
async def list_cost_centers(include_inactive: bool = False, current=Depends(get_current_user)):
    filt = {} if include_inactive else {"is_active": True}
    return clean_doc(await get_db().cost_centers.find(filt).sort("cost_center_name", 1).to_list(1000))

@router.post("")
async def create_cost_center(payload: CostCenterCreate, current=Depends(require_role(["admin"]))):
    db = get_db()
    if await db.cost_centers.find_one({"cost_center_code": payload.cost_center_code}):
        raise HTTPException(409, "Cost center code already exists")
    cc = CostCenter(**payload.model_dump()).model_dump()
    await db.cost_centers.insert_one(cc)
    return clean_doc(cc)
