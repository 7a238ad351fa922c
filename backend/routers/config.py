"""Configuration API endpoints"""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
from fastapi import APIRouter
from pydantic import BaseModel, Field

from services.config_manager import ConfigManager

router = APIRouter()


class BackendSettings(BaseModel):
    """Upstream connection settings; omitted fields keep their stored value"""

    baseUrl: str | None = Field(None, min_length=1)
    queryPath: str | None = None
    connectTimeout: float | None = Field(None, gt=0)


class StreamSettings(BaseModel):
    """Stream settings; idleTimeout 0 or null disables the stall check"""

    idleTimeout: float | None = Field(None, ge=0)


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    backend: BackendSettings | None = None
    stream: StreamSettings | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    backend: dict
    stream: dict


class ValidateResponse(BaseModel):
    """Validation response"""

    valid: bool
    message: str
    base_url: str


async def probe_backend(base_url: str) -> tuple[bool, str]:
    """
    Check that the upstream backend answers at all.
    Any HTTP response counts as reachable; only network failures do not.
    Returns (success: bool, message: str)
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(base_url, timeout=aiohttp.ClientTimeout(total=10)) as response:
                return True, f"Backend reachable (HTTP {response.status})"
    except aiohttp.ClientError as e:
        return False, f"Network error: {str(e)}"
    except asyncio.TimeoutError:
        return False, "Backend did not answer within 10 seconds"


@router.get("", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration"""
    config = ConfigManager.get_instance().get_config()
    return ConfigResponse(backend=config.get("backend", {}), stream=config.get("stream", {}))


@router.put("")
async def update_config(request: ConfigUpdateRequest) -> dict[str, Any]:
    """Update configuration; sessions created from now on pick it up"""
    config_manager = ConfigManager.get_instance()
    current_config = config_manager.get_config()

    # Update only provided fields
    if request.backend:
        backend = request.backend.model_dump(exclude_none=True)
        current_config["backend"] = {**current_config.get("backend", {}), **backend}
    if request.stream:
        stream = request.stream.model_dump(exclude_unset=True)
        current_config["stream"] = {**current_config.get("stream", {}), **stream}

    config_manager.save_config(current_config)

    return {"status": "success", "message": "Configuration updated"}


@router.post("/validate", response_model=ValidateResponse)
async def validate_config() -> ValidateResponse:
    """Validate current configuration by probing the upstream backend"""
    config = ConfigManager.get_instance().get_config()
    base_url = config.get("backend", {}).get("baseUrl", "")

    valid, message = await probe_backend(base_url)
    return ValidateResponse(valid=valid, message=message, base_url=base_url)
