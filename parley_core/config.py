
# ═════════════════════════════════════════════════════════════════════════
# PARLEY: VOICE MOCK-INTERVIEW SERVICE
# Runtime Configuration & Constants
# ═════════════════════════════════════════════════════════════════════════

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ── SYSTEM PATHS ──
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("PARLEY_DATA_DIR", BASE_DIR / "interview_data"))
HISTORY_FILE = Path(os.getenv("PARLEY_HISTORY_FILE", DATA_DIR / "history.jsonl"))

# ── API CONFIGURATION ──
# Extra keys (GROQ_API_KEY_2, GROQ_API_KEY_3) are picked up by the gateway for rotation.
GROQ_API_KEY = os.getenv("GROQ_API_KEY")

# ── LANGUAGE MODEL ──
LLM_MODEL = os.getenv("PARLEY_LLM_MODEL", "llama-3.3-70b-versatile")
LLM_FALLBACK_MODELS = [m.strip() for m in os.getenv("PARLEY_LLM_FALLBACK_MODELS", "").split(",") if m.strip()]
LLM_TEMP = 0.7
LLM_MAX_TOKENS = 1500
LLM_REPLY_MAX_TOKENS = 80            # Interviewer acknowledgments are one or two spoken sentences
LLM_MAX_ATTEMPTS = int(os.getenv("PARLEY_LLM_MAX_ATTEMPTS", "1"))

# ── SPEECH MODELS ──
STT_MODEL = os.getenv("PARLEY_STT_MODEL", "whisper-large-v3")
STT_LANGUAGE = "en"

# Public voice ids -> Microsoft Edge neural voices
TTS_VOICES = {
    "alloy": "en-US-AriaNeural",
    "echo": "en-US-GuyNeural",
    "fable": "en-GB-RyanNeural",
    "onyx": "en-US-AndrewNeural",
    "nova": "en-US-JennyNeural",
    "shimmer": "en-US-EmmaNeural",
}
TTS_DEFAULT_VOICE = "alloy"
TTS_DEFAULT_SPEED = 0.95
TTS_MIN_SPEED = 0.25
TTS_MAX_SPEED = 4.0
TTS_WORDS_PER_SECOND = 2.5           # Duration estimate for synthesized replies

# ── INTERVIEW PROTOCOL ──
DEFAULT_INTERVIEW_TYPE = "mixed"
DEFAULT_JOB_LEVEL = "mid"
