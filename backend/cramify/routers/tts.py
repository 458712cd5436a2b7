from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_tts_client
from ..errors import CramifyError
from ..settings import settings
from ..speech import ElevenLabsClient, synthesize_lesson

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tts"])


class TtsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Validated by synthesize_lesson so a missing text gets the API's error shape
    text: Any = None
    voice_id: Optional[str] = Field(default=None, alias="voiceId")


@router.post("/tts")
async def tts(req: TtsRequest, client: ElevenLabsClient = Depends(get_tts_client)):
    try:
        chunks = await synthesize_lesson(
            client,
            req.text,
            voice_id=req.voice_id,
            max_len=settings.tts_max_chunk_chars,
        )
        return {"chunks": chunks}
    except CramifyError:
        raise
    except Exception as e:
        logger.exception("TTS error")
        raise CramifyError(str(e) or "Text-to-speech failed.") from e
