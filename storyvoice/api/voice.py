"""
Voice synthesis endpoints.

POST /generate-voice      synthesize (or fetch from cache) one narration line
POST /clear-voice-cache   drop every cached voice entry
GET  /voice-info          provider availability and the advertised catalog
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..services.models import VoiceRequest
from ..services.voice_router import VoiceRequestRouter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["voice"])


class GenerateVoiceBody(BaseModel):
    """Request body for /generate-voice. Required fields are checked by the router."""

    text: Optional[str] = None
    character: Optional[str] = None
    emotion: Optional[str] = None
    model: Optional[str] = Field(
        default=None, description="Preferred provider: elevenlabs or openai"
    )

    def to_voice_request(self) -> VoiceRequest:
        preference = self.model.strip().lower() if self.model else None
        return VoiceRequest(
            text=self.text,
            character=self.character,
            emotion=self.emotion,
            provider_preference=preference or None,
        )


def get_voice_router(request: Request) -> VoiceRequestRouter:
    """Resolve the router wired onto the application at startup."""
    return request.app.state.voice_router


@router.post("/generate-voice")
async def generate_voice(
    body: GenerateVoiceBody,
    voice_router: VoiceRequestRouter = Depends(get_voice_router),
) -> JSONResponse:
    result = await voice_router.handle(body.to_voice_request())
    status_code = 200 if result.success else 400
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.post("/clear-voice-cache")
async def clear_voice_cache(
    voice_router: VoiceRequestRouter = Depends(get_voice_router),
) -> Dict[str, Any]:
    deleted = await voice_router.clear_cache()
    return {
        "success": True,
        "message": f"Voice cache cleared - {len(deleted)} entries removed",
        "deletedKeys": deleted,
    }


@router.get("/voice-info")
async def voice_info(
    voice_router: VoiceRequestRouter = Depends(get_voice_router),
) -> Dict[str, Any]:
    return voice_router.describe()
