# edara/main.py
import logging
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi.errors import RateLimitExceeded

from edara.core.config import settings
from edara.core.db import close_db
from edara.core.indexes import startup_tasks
from edara.core.rate_limit import limiter, rate_limit_handler
from edara.api.router import api_router

# ---- Logging ----
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

APP_NAME = os.getenv("APP_NAME", "Edara Tickets")
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

# --- CORS: fusiona .env + defaults locales ---
defaults = {
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:8080",
    "http://127.0.0.1:8080",
}
CORS_ORIGINS = sorted(set((settings.cors_origins or []) + list(defaults)))

app = FastAPI(title=APP_NAME, version=APP_VERSION)

# --- CORS primero ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1024)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)

app.include_router(api_router, prefix="")

@app.get("/health")
async def health():
    return {"ok": True}

@app.get("/ready")
async def ready():
    return {"ready": True}

@app.on_event("startup")
async def startup():
    await startup_tasks()
    logger.info("%s %s started", APP_NAME, APP_VERSION)

@app.on_event("shutdown")
async def shutdown_db_client():
    await close_db()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("edara.main:app", reload=True, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
