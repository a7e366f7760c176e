"""Top-level API router for the yoga studio service.

Mounted by ``main.py`` under ``settings.api_prefix`` (``/api`` by default).
"""
from fastapi import APIRouter

from app.api import accounts, auth, classes, passes, reports, staff

router = APIRouter()

router.include_router(auth.router)
router.include_router(accounts.router)
router.include_router(staff.instructors_router)
router.include_router(staff.managers_router)
router.include_router(passes.router)
router.include_router(classes.router)
router.include_router(reports.router)
