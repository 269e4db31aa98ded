# edara/core/rate_limit.py
from fastapi import Request
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from edara.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=True)
rate_limit_handler = _rate_limit_exceeded_handler

LOGIN_LIMIT = settings.login_rate_limit
ACTION_LIMIT = settings.action_rate_limit


def action_link_key(request: Request) -> str:
    # los enlaces de correo se limitan por cliente y ticket
    return f"{get_remote_address(request)}:{request.query_params.get('ticketId', '-')}"
