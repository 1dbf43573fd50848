"""
PARLEY Core Data Structures
===========================
Pydantic models for session state, speech metrics and structured model output.
Wire shapes use camelCase keys (aliases); Python code uses snake_case names.
"""

import asyncio
from enum import Enum
from typing import List, Optional
from datetime import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── ENUMERATIONS ───────────────────────────────────────────────────────────

class AnswerLength(str, Enum):
    TOO_SHORT = "too-short"
    GOOD = "good"
    TOO_LONG = "too-long"


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    AWAITING_ANSWER = "awaiting_answer"
    PROCESSING = "processing"
    COMPLETE = "complete"


class InterviewType(str, Enum):
    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    MIXED = "mixed"


# ─── SPEECH METRICS ─────────────────────────────────────────────────────────

class FillerWordCount(WireModel):
    model_config = ConfigDict(frozen=True)

    word: str = Field(..., description="Filler term from the reference list")
    count: int = Field(..., ge=1, description="Whole-word occurrences in the transcript")


class SpeechMetrics(WireModel):
    model_config = ConfigDict(frozen=True)

    duration_seconds: float = Field(..., ge=0, description="Recording length in seconds")
    word_count: int = Field(..., ge=0)
    words_per_minute: int = Field(..., description="0 when the duration is not positive")
    filler_word_counts: List[FillerWordCount] = Field(default_factory=list, description="Sorted by count, descending")
    confidence_score: int = Field(..., ge=0, le=100)
    answer_length_category: AnswerLength

    @property
    def total_fillers(self) -> int:
        return sum(f.count for f in self.filler_word_counts)


class SpeechReport(WireModel):
    metrics: SpeechMetrics
    filler_advice: str
    pace_advice: str
    length_advice: str


class MetricsSummary(WireModel):
    answered_turns: int = 0
    total_words: int = 0
    total_speaking_seconds: float = 0.0
    average_words_per_minute: int = 0
    average_confidence: int = 0
    filler_word_counts: List[FillerWordCount] = Field(default_factory=list)

    @property
    def total_fillers(self) -> int:
        return sum(f.count for f in self.filler_word_counts)


# ─── INTERVIEW CONTENT ──────────────────────────────────────────────────────

class Turn(WireModel):
    """One question, answer and interviewer reply. Immutable once recorded."""
    model_config = ConfigDict(frozen=True)

    question: str
    user_answer: str
    interviewer_reply: str
    metrics: Optional[SpeechMetrics] = None


class GeneratedQuestions(WireModel):
    role: str = Field("", description="Job title from the posting")
    company: Optional[str] = Field(None, description="Company name if mentioned")
    job_level: Optional[str] = Field(None, description="junior/mid/senior based on requirements")
    skills: List[str] = Field(default_factory=list, description="Key skills from the posting")
    questions: List[str] = Field(default_factory=list, description="Conversational interview questions, in order")
    fallback: bool = Field(False, description="True when the canned default set replaced unusable model output")


class TurnOutcome(WireModel):
    turn: Turn
    question_index: int
    total_questions: int
    next_question: Optional[str] = None
    is_complete: bool = False
    spoken_text: str = ""


# ─── FEEDBACK ───────────────────────────────────────────────────────────────

class FillerWordSummary(WireModel):
    count: int = Field(0, ge=0)
    examples: List[str] = Field(default_factory=list)


class QuestionQuality(WireModel):
    question_number: int = Field(..., ge=1)
    quality: float = Field(..., ge=0, le=10)
    feedback: str = ""


class InterviewFeedback(WireModel):
    overall_score: float = Field(..., ge=0, le=10)
    interview_readiness: str = Field(..., description="Ready to Apply | Need More Prep | Needs Significant Work")
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    filler_words: FillerWordSummary = Field(default_factory=FillerWordSummary)
    communication_score: float = Field(..., ge=0, le=10)
    technical_score: float = Field(..., ge=0, le=10)
    suggestions: List[str] = Field(default_factory=list)
    answer_quality_by_question: List[QuestionQuality] = Field(default_factory=list)


# ─── SESSION STATE ──────────────────────────────────────────────────────────

class InterviewSession(WireModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    job_role: str = ""
    job_level: str = "mid"
    interview_type: InterviewType = InterviewType.MIXED
    company: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    # Interview Flow
    question_bank: List[str] = Field(..., min_length=1)
    current_index: int = 0
    turns: List[Turn] = Field(default_factory=list)
    state: SessionState = SessionState.NOT_STARTED
    opening_utterance: Optional[str] = None
    ended_early: bool = False
    feedback: Optional[InterviewFeedback] = None

    # Per-session guards; one answer and one feedback generation at a time
    _answer_in_flight: bool = PrivateAttr(default=False)
    _history_recorded: bool = PrivateAttr(default=False)
    _feedback_lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)

    @property
    def total_questions(self) -> int:
        return len(self.question_bank)

    @property
    def current_question(self) -> str:
        return self.question_bank[self.current_index]


class HistoryEntry(WireModel):
    id: str
    job_role: str
    job_level: str
    timestamp: datetime
    duration_seconds: float = Field(0.0, ge=0)
    questions_answered: int = Field(0, ge=0)
    score: Optional[float] = None


class HistoryStats(WireModel):
    total_sessions: int = 0
    average_score: Optional[float] = None
    total_duration_seconds: float = 0.0
    total_questions_answered: int = 0
