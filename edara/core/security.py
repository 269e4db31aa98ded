# edara/core/security.py
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
from edara.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(sub: str, minutes: int | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes or settings.access_token_expire_minutes)
    return jwt.encode({"sub": sub, "exp": expire}, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])


# ============================
#   Tokens de enlaces por email
# ============================
# Hash de 32 bits con signo (h * 31 + c). No es una firma criptográfica: los
# enlaces ya enviados por correo deben seguir validando, así que el algoritmo
# no se cambia.

def string_hash(data: str) -> int:
    h = 0
    for ch in data:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    if h & 0x80000000:
        h -= 1 << 32
    return h


def to_base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


def generate_action_token(ticket_id: str, action: str, secret: str | None = None) -> str:
    secret = (secret if secret is not None else settings.secret_key)[:32]
    return to_base36(abs(string_hash(f"{ticket_id}-{action}-{secret}")))


def verify_action_token(ticket_id: str, action: str, token: str, secret: str | None = None) -> bool:
    return generate_action_token(ticket_id, action, secret) == token
