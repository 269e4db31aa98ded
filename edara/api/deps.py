# edara/api/deps.py
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jwt import PyJWTError
from edara.core.security import decode_token
from edara.core.db import get_db
from typing import List

security = HTTPBearer()

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    token = credentials.credentials
    try:
        payload = decode_token(token)
    except PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    username = payload.get("sub")
    if not username:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    user = await get_db().users.find_one({"username": username})
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user  # dict

def require_role(roles: List[str]):
    async def checker(user=Depends(get_current_user)):
        if user.get("role") not in roles:
            raise HTTPException(status_code=403, detail="Not authorized")
        return user
    return checker
