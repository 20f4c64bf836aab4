"""Health check, settings and connection check endpoints."""

import httpx
from fastapi import APIRouter, HTTPException

from backend import services
from rpg_chronicle.config import load_config, update_config

from .models import CheckConnectionBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-connection")
async def check_connection(body: CheckConnectionBody):
    """Quick health check against an LLM provider URL."""
    url = f"{body.provider_url.rstrip('/')}/api/v1/model"
    headers: dict[str, str] = {}
    if body.api_key:
        headers["Authorization"] = f"Bearer {body.api_key}"
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            resp = await client.get(url, headers=headers)
            resp.raise_for_status()
        return {"ok": True}
    except httpx.HTTPError:
        return {"ok": False}


@router.get("/settings")
async def get_settings():
    """Get app settings (threshold, enabled levels, LLM connection, prompts)."""
    return load_config(services.storage().config_path)


@router.patch("/settings")
async def update_settings(body: dict):
    """Update app settings (partial merge)."""
    try:
        return update_config(services.storage().config_path, body)
    except (AttributeError, TypeError, ValueError) as e:
        raise HTTPException(400, str(e))
