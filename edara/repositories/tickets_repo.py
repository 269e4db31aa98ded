# edara/repositories/tickets_repo.py
from typing import Dict, Any, List
from pymongo import ReturnDocument
from edara.core.db import get_db

NOT_DELETED = {"is_deleted": {"$ne": True}}

async def find_by_id(ticket_id: str, include_deleted: bool = False) -> dict | None:
    filt: Dict[str, Any] = {"id": ticket_id}
    if not include_deleted:
        filt.update(NOT_DELETED)
    return await get_db().tickets.find_one(filt)

async def insert(doc: dict):
    await get_db().tickets.insert_one(doc)

async def update_by_id(ticket_id: str, ops: Dict[str, Any]):
    await get_db().tickets.update_one({"id": ticket_id}, ops)

async def list_paginated(filt: Dict[str, Any], sort_field: str, sort_dir: int, skip: int, limit: int) -> List[dict]:
    cur = get_db().tickets.find({**filt, **NOT_DELETED}).sort(sort_field, sort_dir).skip(skip).limit(limit)
    return await cur.to_list(length=limit)

async def list_all(filt: Dict[str, Any]) -> List[dict]:
    return await get_db().tickets.find({**filt, **NOT_DELETED}).sort("created_at", -1).to_list(None)

async def count(filt: Dict[str, Any]) -> int:
    return await get_db().tickets.count_documents({**filt, **NOT_DELETED})

async def next_ticket_number() -> str:
    counter = await get_db().counters.find_one_and_update(
        {"_id": "ticket_number"},
        {"$inc": {"seq": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return f"TKT-{int(counter['seq']):06d}"
