"""Serves the IndexNow key-location verification file."""

from __future__ import annotations

import secrets

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["indexnow"])


@router.get("/{key_name}.txt", response_class=PlainTextResponse)
async def get_key_file(key_name: str, request: Request) -> PlainTextResponse:
    api_key = getattr(request.app.state, "indexnow_api_key", None)
    if not isinstance(api_key, str) or not secrets.compare_digest(
        key_name.encode("utf-8"), api_key.encode("utf-8")
    ):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    return PlainTextResponse(api_key)


__all__ = ["router"]
