"""Health check, settings, and connection check endpoints."""

import httpx
from fastapi import APIRouter, HTTPException
from pydantic import ValidationError as SchemaError

from backend import config, engine

from .models import CheckConnectionBody

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.post("/check-connection")
async def check_connection(body: CheckConnectionBody):
    """Quick health check against an LLM provider URL."""
    base = body.provider_url.rstrip("/")
    url = f"{base}/v1/models" if body.provider_format == "openai" else f"{base}/api/v1/model"
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
    """Get global settings (connections, prompt overrides, engine tuning)."""
    return config.get_config()


@router.patch("/settings")
async def update_settings(body: dict):
    """Update global settings (partial merge) and rebuild the engine."""
    try:
        updated = config.update_config(body)
    except SchemaError as e:
        raise HTTPException(400, f"Invalid engine settings: {e.error_count()} error(s)")
    engine.reload_engine()
    return updated
