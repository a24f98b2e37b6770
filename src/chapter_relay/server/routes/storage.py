"""Key/value settings routes used by the control app."""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from chapter_relay.contracts import SuccessResponse, WriteSettingRequest
from chapter_relay.errors import StorageError
from chapter_relay.server.depends import get_settings_store
from chapter_relay.storage import SettingsStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/{key}")
async def read_setting(
    key: str, store: SettingsStore = Depends(get_settings_store)
) -> dict[str, Any]:
    """Return ``{key: value}``; the value is null when unset."""
    value = await asyncio.to_thread(store.read_setting, key)
    return {key: value}


@router.post("", response_model=SuccessResponse, response_model_exclude_none=True)
async def write_setting(
    body: WriteSettingRequest, store: SettingsStore = Depends(get_settings_store)
) -> SuccessResponse:
    try:
        await asyncio.to_thread(store.write_setting, body.key, body.value)
    except StorageError as e:
        logger.error(f"Failed to store setting {body.key}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    return SuccessResponse()
