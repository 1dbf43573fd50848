"""
PARLEY Interview Orchestrator
=============================
Manages the lifecycle of interview sessions, including:
- Question bank selection (job posting or static category)
- Interview Flow Control (state machine over the Q&A loop)
- Per-answer speech scoring
- Feedback generation and history summaries

The controller performs no persistence: callers save a history entry once a
session reaches the complete state.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence

from .config import DEFAULT_JOB_LEVEL, LLM_REPLY_MAX_TOKENS
from .errors import InvalidInputError, InvalidTransitionError, SessionNotFoundError
from .llm_gateway import llm_gateway
from .parsing import parse_model_output
from .prompts import (
    QUESTION_GENERATION_PROMPT, conversation_messages, feedback_system_prompt,
    feedback_user_prompt, interviewer_system_prompt, opening_user_prompt,
    question_generation_user_prompt
)
from .question_bank import (
    DEFAULT_QUESTION_BANKS, FALLBACK_FEEDBACK, FALLBACK_GENERATED_QUESTIONS, QuestionBankConfig
)
from .speech_metrics import analyze_speech, summarize_metrics
from .structs import (
    GeneratedQuestions, HistoryEntry, InterviewFeedback, InterviewSession,
    InterviewType, SessionState, SpeechMetrics, Turn, TurnOutcome
)

logger = logging.getLogger(__name__)

Analyzer = Callable[[str, float], SpeechMetrics]


async def generate_question_bank(job_posting: str, gateway=None) -> GeneratedQuestions:
    """
    Derive role details and an ordered question list from a job posting.
    Unusable model output resolves to the canned question set.
    """
    if not job_posting or not job_posting.strip():
        raise InvalidInputError("Job posting is required")

    gateway = gateway or llm_gateway
    logger.info(f"Generating questions from a {len(job_posting)}-character job posting...")
    raw = await gateway.generate_json(QUESTION_GENERATION_PROMPT, question_generation_user_prompt(job_posting))

    generated = parse_model_output(raw, GeneratedQuestions, FALLBACK_GENERATED_QUESTIONS)
    questions = [q.strip() for q in generated.questions if q and q.strip()]
    if not questions:
        logger.warning("Model returned no questions; using the default question set")
        return FALLBACK_GENERATED_QUESTIONS.model_copy(deep=True)

    generated.questions = questions
    return generated


class SessionManager:
    """In-memory registry of live interview sessions, keyed by id."""
    _sessions: Dict[str, InterviewSession] = {}

    @classmethod
    def create_session(cls, job_role: str = "",
                       job_level: str = DEFAULT_JOB_LEVEL,
                       interview_type: InterviewType = InterviewType.MIXED,
                       question_bank: Optional[Sequence[str]] = None,
                       banks: QuestionBankConfig = DEFAULT_QUESTION_BANKS,
                       company: Optional[str] = None,
                       skills: Optional[List[str]] = None) -> InterviewSession:
        if question_bank is None:
            question_bank = banks.select(interview_type)
        questions = [q.strip() for q in question_bank if q and q.strip()]
        if not questions:
            raise InvalidInputError("A session needs at least one question")

        session = InterviewSession(
            job_role=job_role.strip(),
            job_level=(job_level or DEFAULT_JOB_LEVEL).strip(),
            interview_type=InterviewType(interview_type),
            company=company,
            skills=list(skills or []),
            question_bank=questions,
        )
        cls._sessions[session.id] = session
        logger.info(f"Created Session {session.id}: {len(questions)} {session.interview_type.value} questions")
        return session

    @classmethod
    def create_from_posting(cls, generated: GeneratedQuestions,
                            job_role: str = "",
                            job_level: str = "",
                            interview_type: InterviewType = InterviewType.MIXED) -> InterviewSession:
        role, level = generated.role or job_role, generated.job_level or job_level
        if generated.fallback:
            # The canned set knows nothing about this posting
            role, level = job_role or generated.role, job_level or generated.job_level
        return cls.create_session(
            job_role=role,
            job_level=level or DEFAULT_JOB_LEVEL,
            interview_type=interview_type,
            question_bank=generated.questions,
            company=generated.company,
            skills=generated.skills,
        )

    @classmethod
    def get_session(cls, session_id: str) -> Optional[InterviewSession]:
        return cls._sessions.get(session_id)

    @classmethod
    def require_session(cls, session_id: str) -> InterviewSession:
        session = cls._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    @classmethod
    def list_sessions(cls):
        return cls._sessions.values()


class InterviewController:
    """
    Drives one session through its states:

        not_started -> awaiting_answer -> processing -> awaiting_answer ... -> complete

    Exactly one external call is in flight at a time; a failed call leaves the
    session in the state it had before the action.
    """

    def __init__(self, session: InterviewSession, gateway=None, analyzer: Analyzer = analyze_speech):
        self.session = session
        self.gateway = gateway or llm_gateway
        self.analyzer = analyzer

    def _require_state(self, action: str, *allowed: SessionState) -> None:
        if self.session.state not in allowed:
            raise InvalidTransitionError(
                f"Cannot {action} while the interview is {self.session.state.value.replace('_', ' ')}"
            )

    def _system_prompt(self, question_index: int) -> str:
        session = self.session
        return interviewer_system_prompt(
            interview_type=session.interview_type.value,
            job_level=session.job_level,
            question_index=question_index,
            total_questions=session.total_questions,
            job_role=session.job_role or None,
            recent_answers=[t.user_answer for t in session.turns],
        )

    async def start(self) -> str:
        """Voice the first question and wait for the candidate's answer."""
        session = self.session
        self._require_state("start the interview", SessionState.NOT_STARTED)

        first_question = session.question_bank[0]
        utterance = await self.gateway.generate_text(
            self._system_prompt(0), opening_user_prompt(first_question),
            temperature=0.8, max_tokens=LLM_REPLY_MAX_TOKENS
        )

        session.opening_utterance = utterance.strip() or first_question
        session.current_index = 0
        session.state = SessionState.AWAITING_ANSWER
        logger.info(f"Session {session.id}: interview started ({session.total_questions} questions)")
        return session.opening_utterance

    @asynccontextmanager
    async def claim_answer(self) -> AsyncIterator["InterviewController"]:
        """
        Hold the session for one answer, from upload through transcription to the
        interviewer's reply. A second answer arriving meanwhile is rejected.
        """
        session = self.session
        self._require_state("submit an answer", SessionState.AWAITING_ANSWER)
        if session._answer_in_flight:
            raise InvalidTransitionError("An answer is already being processed for this interview")

        session._answer_in_flight = True
        try:
            yield self
        finally:
            session._answer_in_flight = False

    async def submit_answer(self, transcript: str, duration_seconds: float) -> TurnOutcome:
        """
        Score the answer, get the interviewer's acknowledgment and record the turn.
        The session completes when the last question's answer is processed.
        """
        session = self.session
        self._require_state("submit an answer", SessionState.AWAITING_ANSWER)

        answer = (transcript or "").strip()
        if not answer:
            raise InvalidInputError("No answer was captured. Please record your answer again.")

        index = session.current_index
        question = session.current_question
        last_index = session.total_questions - 1

        session.state = SessionState.PROCESSING
        logger.info(f"Session {session.id}: processing answer to Q{index + 1}/{session.total_questions}")

        try:
            metrics = self.analyzer(answer, duration_seconds)
            reply = await self.gateway.generate_chat(
                self._system_prompt(index),
                conversation_messages(session.turns, question, answer),
                temperature=0.9, max_tokens=LLM_REPLY_MAX_TOKENS
            )
        except Exception:
            session.state = SessionState.AWAITING_ANSWER
            raise

        turn = Turn(question=question, user_answer=answer, interviewer_reply=reply.strip(), metrics=metrics)
        session.turns.append(turn)

        next_index = min(index + 1, last_index)
        is_complete = index >= last_index
        next_question = None

        if is_complete:
            session.state = SessionState.COMPLETE
            session.completed_at = datetime.now()
            spoken_text = turn.interviewer_reply
            logger.info(f"Session {session.id}: interview complete after {len(session.turns)} answers")
        else:
            session.current_index = next_index
            session.state = SessionState.AWAITING_ANSWER
            next_question = session.question_bank[next_index]
            spoken_text = f"{turn.interviewer_reply} {next_question}".strip()

        logger.info(
            f"Session {session.id}: Q{index + 1} scored {metrics.confidence_score}/100 "
            f"({metrics.words_per_minute} wpm, {metrics.total_fillers} fillers)"
        )

        return TurnOutcome(
            turn=turn,
            question_index=next_index,
            total_questions=session.total_questions,
            next_question=next_question,
            is_complete=is_complete,
            spoken_text=spoken_text,
        )

    def finish_early(self) -> InterviewSession:
        """Operator-initiated end; skipped questions are simply never asked."""
        session = self.session
        self._require_state("finish the interview", SessionState.AWAITING_ANSWER)
        if session._answer_in_flight:
            raise InvalidTransitionError("Cannot finish the interview while an answer is being processed")

        session.state = SessionState.COMPLETE
        session.completed_at = datetime.now()
        session.ended_early = True
        logger.info(f"Session {session.id}: finished early after {len(session.turns)}/{session.total_questions} answers")
        return session

    async def generate_feedback(self) -> InterviewFeedback:
        """
        Structured feedback for a completed session, generated once and cached
        on the session. Unusable model output yields the default record.
        """
        session = self.session
        self._require_state("generate feedback", SessionState.COMPLETE)
        if not session.turns:
            raise InvalidInputError("No interview data provided")

        # Concurrent callers wait for the first generation instead of repeating it
        async with session._feedback_lock:
            if session.feedback is not None:
                return session.feedback

            logger.info(f"Session {session.id}: generating feedback for {len(session.turns)} answers...")
            kind, level = session.interview_type.value, session.job_level
            raw = await self.gateway.generate_json(
                feedback_system_prompt(kind, level),
                feedback_user_prompt(kind, level, session.turns, summarize_metrics(session.turns)),
            )
            session.feedback = parse_model_output(raw, InterviewFeedback, FALLBACK_FEEDBACK)
            return session.feedback

    def claim_history_record(self) -> bool:
        """True exactly once per session: the caller that gets it persists the history entry."""
        session = self.session
        self._require_state("record the interview", SessionState.COMPLETE)
        if session._history_recorded:
            return False
        session._history_recorded = True
        return True

    def release_history_record(self) -> None:
        """Give the claim back after a failed write so a later request can retry it."""
        self.session._history_recorded = False

    def history_entry(self, feedback: Optional[InterviewFeedback] = None) -> HistoryEntry:
        session = self.session
        self._require_state("summarize the interview", SessionState.COMPLETE)

        ended = session.completed_at or datetime.now()
        return HistoryEntry(
            id=session.id,
            job_role=session.job_role,
            job_level=session.job_level,
            timestamp=ended,
            duration_seconds=max(0.0, (ended - session.started_at).total_seconds()),
            questions_answered=len(session.turns),
            score=feedback.overall_score if feedback else None,
        )
