import json

from fastapi import APIRouter, Response

from app.core.config import get_settings

router = APIRouter()


def render_runtime_config() -> str:
    return f"window.env = {json.dumps(get_settings().runtime_env())};"


@router.get("/config.js", include_in_schema=False)
async def runtime_config() -> Response:
    return Response(
        content=render_runtime_config(),
        media_type="application/javascript",
    )
