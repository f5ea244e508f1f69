"""API router for v1 endpoints."""

from fastapi import APIRouter

from docintel.api import chat, documents, insights, validation

router = APIRouter()

router.include_router(documents.router, tags=["documents"])
router.include_router(chat.router, tags=["chat"])
router.include_router(insights.router, tags=["insights"])
router.include_router(validation.router, tags=["validation"])
