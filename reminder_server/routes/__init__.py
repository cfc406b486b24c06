"""API routes for the Reminder Scheduler."""

from fastapi import APIRouter

from .reminders import router as reminders_router

api_router = APIRouter(prefix="/api")

api_router.include_router(reminders_router)

__all__ = ["api_router"]
