# edara/core/indexes.py
import logging
from datetime import datetime, timezone
import uuid
from edara.core.db import get_db
from edara.core.security import hash_password
from edara.core.config import settings

logger = logging.getLogger(__name__)

async def ensure_core_indexes(db):
    # tickets
    await db.tickets.create_index([("id", 1)], unique=True)
    await db.tickets.create_index([("ticket_number", 1)], unique=True)
    await db.tickets.create_index([("created_at", -1)])
    await db.tickets.create_index([("status", 1), ("department_id", 1)])
    await db.tickets.create_index([("user_id", 1)])
    await db.tickets.create_index([("assigned_to", 1)])
    await db.tickets.create_index([("approved_at", -1)])
    await db.tickets.create_index([("is_deleted", 1)])

    # roster de aprobadores
    await db.department_admins.create_index([("id", 1)], unique=True)
    await db.department_admins.create_index([("department_id", 1), ("admin_order", 1)])
    await db.department_admins.create_index([("user_id", 1)])
    await db.department_admins.create_index(
        [("department_id", 1), ("user_id", 1), ("is_purchase_admin", 1)], unique=True
    )

    # historial, comentarios y notificaciones
    await db.ticket_activity_logs.create_index([("ticket_id", 1), ("created_at", 1)])
    await db.ticket_comments.create_index([("ticket_id", 1), ("created_at", 1)])
    await db.notifications.create_index([("user_id", 1), ("created_at", -1)])

    # users / departments / cost centers
    await db.users.create_index([("username", 1)], unique=True)
    await db.users.create_index([("id", 1)], unique=True)
    await db.departments.create_index([("name", 1)], unique=True)
    await db.cost_centers.create_index([("cost_center_code", 1)], unique=True)

async def init_data(db):
    if await db.users.find_one({"role": "admin"}):
        return
    await db.users.insert_one({
        "id": uuid.uuid4().hex, "username": "admin", "full_name": "System Administrator",
        "email": None, "role": "admin", "created_at": datetime.now(timezone.utc),
        "password_hash": hash_password(settings.seed_admin_password),
    })
    logger.info("init_data: admin user seeded")

async def startup_tasks():
    db = get_db()
    await ensure_core_indexes(db)
    await init_data(db)
