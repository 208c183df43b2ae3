"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from rendezvous.api.v1 import agreements, candidacies, conversations, credits, health, payments
from rendezvous.core.config import get_config

api_router = APIRouter(prefix=get_config().API_PREFIX)
api_router.include_router(health.router)
api_router.include_router(conversations.router)
api_router.include_router(candidacies.router)
api_router.include_router(agreements.router)
api_router.include_router(payments.router)
api_router.include_router(credits.router)


def get_api_router() -> APIRouter:
    return api_router
