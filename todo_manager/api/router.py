from fastapi import APIRouter

from .. import __version__
from ..routers import auth as auth_router
from ..routers import tasks as tasks_router

api_router = APIRouter(prefix="/api")

# Endpoints are available at /api/auth/... and /api/tasks/...
api_router.include_router(auth_router.router)
api_router.include_router(tasks_router.router)


@api_router.get("", tags=["meta"])  # lightweight index of the API
def api_info():
    return {
        "success": True,
        "message": "Task manager API",
        "data": {
            "name": "Task Manager API",
            "version": __version__,
            "docs": "/docs",
            "endpoints": {
                "auth": {
                    "register": "POST /api/auth/register",
                    "login": "POST /api/auth/login",
                    "profile": "GET /api/auth/profile",
                    "update_profile": "PUT /api/auth/profile",
                    "change_password": "PUT /api/auth/change-password",
                    "validate_token": "POST /api/auth/validate-token",
                    "logout": "POST /api/auth/logout",
                },
                "tasks": {
                    "create": "POST /api/tasks",
                    "list": "GET /api/tasks",
                    "stats": "GET /api/tasks/stats",
                    "get": "GET /api/tasks/{id}",
                    "update": "PUT /api/tasks/{id}",
                    "delete": "DELETE /api/tasks/{id}",
                    "toggle": "PATCH /api/tasks/{id}/toggle",
                    "delete_completed": "DELETE /api/tasks/completed",
                    "mark_all_completed": "PUT /api/tasks/mark-all-completed",
                },
            },
        },
    }
