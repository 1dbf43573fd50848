"""
PARLEY Speech Services
======================
- Answer transcription (Whisper via Groq)
- Interviewer speech synthesis (Microsoft Edge TTS)
- Uploaded answer audio as a scoped temp-file resource
"""

import os
import logging
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiofiles
import edge_tts

from .config import (
    STT_MODEL, STT_LANGUAGE, TTS_VOICES, TTS_DEFAULT_VOICE, TTS_DEFAULT_SPEED,
    TTS_MIN_SPEED, TTS_MAX_SPEED, TTS_WORDS_PER_SECOND
)
from .errors import InvalidInputError, SpeechSynthesisError, TranscriptionError
from .llm_gateway import llm_gateway

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 1024


# ── VOICE PARAMETERS ──

def resolve_voice(voice: Optional[str]) -> str:
    """Map a public voice id onto an Edge neural voice."""
    voice = (voice or TTS_DEFAULT_VOICE).lower()
    if voice not in TTS_VOICES:
        raise InvalidInputError(f"Invalid voice. Must be one of: {', '.join(TTS_VOICES)}")
    return TTS_VOICES[voice]


def clamp_speed(speed: Optional[float]) -> float:
    if speed is None:
        speed = TTS_DEFAULT_SPEED
    return max(TTS_MIN_SPEED, min(TTS_MAX_SPEED, float(speed)))


def speed_to_rate(speed: float) -> str:
    """Edge TTS expresses speed as a signed percentage, e.g. 1.1 -> '+10%'."""
    percent = int(round((clamp_speed(speed) - 1.0) * 100))
    return f"{percent:+d}%"


def estimate_speech_duration(text: str, speed: float = TTS_DEFAULT_SPEED) -> float:
    words = len(text.split())
    return round(words / TTS_WORDS_PER_SECOND / clamp_speed(speed), 3)


# ── ANSWER AUDIO ──

@asynccontextmanager
async def recorded_answer(upload, session_id: str = "adhoc", suffix: str = ".webm") -> AsyncIterator[str]:
    """
    Write an uploaded recording to a temp file for the duration of the block.
    The file is removed on exit, including when processing fails.
    """
    fd, path = tempfile.mkstemp(suffix=suffix, prefix=f"answer_{session_id}_")
    os.close(fd)
    try:
        size = 0
        async with aiofiles.open(path, "wb") as f:
            while content := await upload.read(UPLOAD_CHUNK_BYTES):
                size += len(content)
                await f.write(content)
        if size == 0:
            raise InvalidInputError("No recorded audio was received.")
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)


async def transcribe_audio(file_path: str) -> str:
    """Transcribe a recorded answer. Failures surface as TranscriptionError; there is no retry."""
    async with aiofiles.open(file_path, "rb") as f:
        content = await f.read()
    if not content:
        raise InvalidInputError("No recorded audio was received.")

    client = llm_gateway.get_client()
    try:
        transcription = await client.audio.transcriptions.create(
            model=STT_MODEL,
            file=(os.path.basename(file_path), content),
            language=STT_LANGUAGE
        )
    except Exception as e:
        logger.error(f"STT Error: {e}")
        raise TranscriptionError("Failed to transcribe audio. Please try again.") from e

    return (transcription.text or "").strip()


# ── INTERVIEWER SPEECH ──

async def generate_speech(text: str, voice: Optional[str] = None, speed: Optional[float] = None) -> str:
    """Synthesize `text` to an mp3 temp file and return its path. The caller removes the file."""
    if not text or not text.strip():
        raise InvalidInputError("No text provided")
    voice_name = resolve_voice(voice)
    rate = speed_to_rate(clamp_speed(speed))

    fd, output_path = tempfile.mkstemp(suffix=".mp3", prefix="parley_tts_")
    os.close(fd)

    try:
        communicate = edge_tts.Communicate(text, voice_name, rate=rate)
        await communicate.save(output_path)
    except Exception as e:
        logger.error(f"TTS Error ({voice_name}, {rate}): {e}")
        os.remove(output_path)
        raise SpeechSynthesisError("Failed to generate speech.") from e

    return output_path
