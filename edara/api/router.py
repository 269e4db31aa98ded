# edara/api/router.py
from fastapi import APIRouter
from edara.api.routes import auth, users, departments, tickets, ticket_actions, cost_centers, notifications, reports

api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(departments.router, prefix="/departments", tags=["departments"])
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
api_router.include_router(ticket_actions.router, tags=["ticket-actions"])
api_router.include_router(cost_centers.router, prefix="/cost-centers", tags=["cost-centers"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(reports.router, tags=["reports"])
