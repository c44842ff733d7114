from fastapi import APIRouter
from intake.routes.admin.candidates import admin_candidates_router

admin_router = APIRouter(tags=["admin"])
admin_router.include_router(admin_candidates_router)

__all__ = ["admin_router"]
