"""
PARLEY Voice Interview Server
=============================
Mock-interview practice on FastAPI + Asyncio.

Features:
- Question banks from a pasted job posting or a static category
- Voice loop: Audio In -> STT -> Interviewer Reply -> TTS -> Audio Out
- Per-answer speech metrics (fillers, pace, confidence)
- Structured feedback and an append-only interview history
"""

import os
import logging
import uvicorn
from typing import Optional
from fastapi import FastAPI, UploadFile, File, Form, HTTPException, BackgroundTasks, Request
from fastapi.responses import FileResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware

# Import Core Logic
from parley_core.config import DEFAULT_INTERVIEW_TYPE, DEFAULT_JOB_LEVEL, TTS_DEFAULT_VOICE, TTS_DEFAULT_SPEED
from parley_core.errors import (
    ExternalServiceError, InvalidInputError, InvalidTransitionError,
    SessionNotFoundError, SpeechSynthesisError
)
from parley_core.history import HistoryStore
from parley_core.orchestrator import InterviewController, SessionManager, generate_question_bank
from parley_core.speech import (
    clamp_speed, estimate_speech_duration, generate_speech, recorded_answer, resolve_voice, transcribe_audio
)
from parley_core.speech_metrics import analyze_speech, speech_report, summarize_metrics
from parley_core.structs import InterviewType

# Logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="PARLEY Interview Coach", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Transcript", "X-Response", "X-Question-Index", "X-Complete",
                    "X-Confidence", "X-Session-Id", "X-Audio-Duration"]
)

history_store = HistoryStore()


# ── ERROR MAPPING ──

@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.exception_handler(SessionNotFoundError)
async def not_found_handler(request: Request, exc: SessionNotFoundError):
    return JSONResponse({"error": str(exc)}, status_code=404)


@app.exception_handler(InvalidTransitionError)
async def transition_handler(request: Request, exc: InvalidTransitionError):
    return JSONResponse({"error": str(exc)}, status_code=409)


@app.exception_handler(ExternalServiceError)
async def external_failure_handler(request: Request, exc: ExternalServiceError):
    logger.error(f"{exc.service} failure on {request.url.path}: {exc}")
    return JSONResponse({"error": str(exc), "service": exc.service, "retryable": True}, status_code=502)


# ── HELPER: Audio Responses ──

def _header_text(text: Optional[str], limit: int) -> str:
    # Header values must be latin-1; transcripts can contain anything
    return (text or "")[:limit].replace("\n", " ").encode("latin-1", "replace").decode("latin-1")


def _header_name(key: str) -> str:
    return "X-" + "-".join(part.capitalize() for part in key.split("_"))


def _header_value(value) -> str:
    return str(value).lower() if isinstance(value, bool) else str(value)


async def speak_response(text: str, background: BackgroundTasks, info: dict,
                         voice: Optional[str] = None, speed: Optional[float] = None):
    """
    Return synthesized speech with `info` in X- headers, or `info` as JSON with a
    fallback flag so the client uses its on-device synthesizer when TTS fails.
    """
    try:
        audio_path = await generate_speech(text, voice, speed)
    except SpeechSynthesisError as e:
        logger.warning(f"Speech synthesis unavailable, asking client to speak locally: {e}")
        return JSONResponse({**info, "response": text, "fallback": "client-speech"})

    background.add_task(os.remove, audio_path)
    headers = {
        _header_name(k): _header_text(_header_value(v), 500 if k == "transcript" else 4000)
        for k, v in info.items()
    }
    headers["X-Response"] = _header_text(text, 4000)
    headers["X-Audio-Duration"] = str(estimate_speech_duration(text, TTS_DEFAULT_SPEED if speed is None else speed))
    return FileResponse(audio_path, media_type="audio/mpeg", headers=headers)


def _speech_options(voice: Optional[str], speed: Optional[float]) -> float:
    """Reject a bad voice before any model call or state change; returns the clamped speed."""
    resolve_voice(voice)
    return clamp_speed(speed)


def _session_view(session) -> dict:
    return {
        "session": session.model_dump(mode="json", by_alias=True),
        "metricsSummary": summarize_metrics(session.turns).model_dump(mode="json", by_alias=True),
    }


# ── ENDPOINTS ──

@app.get("/health")
async def health_check():
    return {"status": "ok", "sessions": len(SessionManager.list_sessions())}


@app.post("/questions")
async def generate_questions(job_posting: str = Form("")):
    """Derive role details and interview questions from a job posting."""
    generated = await generate_question_bank(job_posting)
    return generated.model_dump(by_alias=True)


@app.post("/sessions")
async def create_session(
    job_role: str = Form(""),
    job_level: str = Form(DEFAULT_JOB_LEVEL),
    interview_type: str = Form(DEFAULT_INTERVIEW_TYPE),
    job_posting: Optional[str] = Form(None)
):
    """
    Create an interview session. With a job posting the question bank is
    generated from it; otherwise the static bank for `interview_type` is used.
    """
    try:
        kind = InterviewType(interview_type)
    except ValueError:
        raise HTTPException(400, f"Unknown interview type: {interview_type}")

    if job_posting is not None and job_posting.strip():
        generated = await generate_question_bank(job_posting)
        session = SessionManager.create_from_posting(generated, job_role, job_level, kind)
    else:
        session = SessionManager.create_session(job_role=job_role, job_level=job_level, interview_type=kind)

    return {
        "session_id": session.id,
        "status": session.state.value,
        "job_role": session.job_role,
        "job_level": session.job_level,
        "total_questions": session.total_questions,
        "questions_preview": session.question_bank,
    }


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    return _session_view(SessionManager.require_session(session_id))


@app.post("/sessions/{session_id}/start")
async def start_interview(
    session_id: str,
    background: BackgroundTasks,
    voice: str = Form(TTS_DEFAULT_VOICE),
    speed: float = Form(TTS_DEFAULT_SPEED)
):
    """Begin the interview. Returns the spoken first question."""
    speed = _speech_options(voice, speed)
    session = SessionManager.require_session(session_id)
    utterance = await InterviewController(session).start()

    return await speak_response(utterance, background, {
        "session_id": session_id,
        "question_index": 0,
        "complete": False,
    }, voice, speed)


@app.post("/sessions/{session_id}/answer")
async def answer_question(
    session_id: str,
    background: BackgroundTasks,
    file: UploadFile = File(...),
    duration_seconds: float = Form(...),
    voice: str = Form(TTS_DEFAULT_VOICE),
    speed: float = Form(TTS_DEFAULT_SPEED)
):
    """
    Main Interview Loop: Audio In -> STT -> Reply -> TTS -> Audio Out
    """
    speed = _speech_options(voice, speed)
    controller = InterviewController(SessionManager.require_session(session_id))

    async with controller.claim_answer():
        async with recorded_answer(file, session_id) as audio_path:
            transcript = await transcribe_audio(audio_path)
        logger.info(f"[{session_id}] Candidate: {transcript}")

        outcome = await controller.submit_answer(transcript, duration_seconds)
        logger.info(f"[{session_id}] Interviewer: {outcome.spoken_text}")

    return await speak_response(outcome.spoken_text, background, {
        "transcript": transcript,
        "question_index": outcome.question_index,
        "complete": outcome.is_complete,
        "confidence": outcome.turn.metrics.confidence_score if outcome.turn.metrics else 0,
    }, voice, speed)


@app.post("/sessions/{session_id}/finish")
async def finish_interview(session_id: str):
    """End the interview before the question bank is exhausted."""
    session = InterviewController(SessionManager.require_session(session_id)).finish_early()
    return {"session_id": session.id, "status": session.state.value, "questions_answered": len(session.turns)}


@app.post("/sessions/{session_id}/feedback")
async def interview_feedback(session_id: str):
    """Generate feedback for a completed interview and record it in the history once."""
    controller = InterviewController(SessionManager.require_session(session_id))

    feedback = await controller.generate_feedback()
    entry = controller.history_entry(feedback)
    if controller.claim_history_record():
        try:
            await history_store.append(entry)
        except OSError:
            controller.release_history_record()
            raise

    return {
        "feedback": feedback.model_dump(by_alias=True),
        "history": entry.model_dump(mode="json", by_alias=True),
        "metricsSummary": summarize_metrics(controller.session.turns).model_dump(by_alias=True),
    }


@app.post("/analyze")
async def analyze_answer(transcript: str = Form(""), duration_seconds: float = Form(...)):
    """Score a transcript without running an interview."""
    return speech_report(analyze_speech(transcript, duration_seconds)).model_dump(mode="json", by_alias=True)


@app.post("/tts")
async def text_to_speech(
    background: BackgroundTasks,
    text: str = Form(""),
    voice: str = Form(TTS_DEFAULT_VOICE),
    speed: float = Form(TTS_DEFAULT_SPEED)
):
    speed = _speech_options(voice, speed)
    return await speak_response(text, background, {}, voice, speed)


@app.post("/transcribe")
async def transcribe(file: UploadFile = File(...)):
    async with recorded_answer(file) as audio_path:
        text = await transcribe_audio(audio_path)
    return {"text": text}


@app.get("/history")
async def interview_history(limit: int = 50):
    entries = await history_store.list_entries(limit)
    stats = await history_store.stats()
    return {
        "sessions": [e.model_dump(mode="json", by_alias=True) for e in entries],
        "stats": stats.model_dump(by_alias=True),
    }


if __name__ == "__main__":
    uvicorn.run("parley_server:app", host="0.0.0.0", port=8000, reload=True)
