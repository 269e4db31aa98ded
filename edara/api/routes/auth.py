# edara/api/routes/auth.py
import logging
from fastapi import APIRouter, HTTPException, Request as FastAPIRequest, Depends
from edara.core.rate_limit import limiter, LOGIN_LIMIT
from edara.core.db import get_db
from edara.core.security import verify_password, create_access_token
from edara.api.deps import get_current_user
from edara.models.user import UserLogin
from edara.utils.mongo_helpers import clean_doc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")

@router.post("/login")
@limiter.limit(LOGIN_LIMIT)
async def login(request: FastAPIRequest, user_login: UserLogin):
    user_doc = await get_db().users.find_one({"username": user_login.username})
    if not user_doc or not verify_password(user_login.password, user_doc["password_hash"]):
        logger.warning("Failed login for %s from %s", user_login.username, request.client.host if request.client else "?")
        raise HTTPException(401, "Incorrect username or password")

    token = create_access_token(sub=user_doc["username"])
    return {"access_token": token, "token_type": "bearer", "user": clean_doc(user_doc)}

@router.get("/me")
async def me(current_user=Depends(get_current_user)):
    return clean_doc(current_user)
