"""API routes."""

from fastapi import APIRouter

from contactlink.api.routes import identify

api_router = APIRouter()

api_router.include_router(identify.router, tags=["identify"])
