"""
FastAPI dependencies.

The record store is built once in the application lifespan and shared through
app.state; tests override get_store with their own store.
"""

import logging

from fastapi import Query, Request

from bancalplast.app.db.store import RecordStore
from bancalplast.app.models.enums import RefreshTrigger

logger = logging.getLogger("bancalplast")


async def get_store(request: Request) -> RecordStore:
    """FastAPI dependency returning the application's record store."""
    return request.app.state.store


async def refresh_trigger(
    request: Request,
    trigger: RefreshTrigger = Query(RefreshTrigger.USER, description="What caused the reload"),
) -> RefreshTrigger:
    logger.debug("Refreshing %s (trigger=%s)", request.url.path, trigger.value)
    return trigger
