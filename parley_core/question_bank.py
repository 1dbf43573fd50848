"""
PARLEY Question Banks
=====================
Immutable question sets for interviews that are not derived from a job posting,
plus the canned artifacts used when model output cannot be parsed.
"""

from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .structs import FillerWordSummary, GeneratedQuestions, InterviewFeedback, InterviewType


class QuestionBankConfig(BaseModel):
    """Static question sets, one per interview type. Injected into sessions at creation."""
    model_config = ConfigDict(frozen=True)

    technical: Tuple[str, ...] = Field(..., min_length=1)
    behavioral: Tuple[str, ...] = Field(..., min_length=1)
    mixed: Tuple[str, ...] = Field(..., min_length=1)

    def select(self, interview_type: Union[InterviewType, str]) -> Tuple[str, ...]:
        return getattr(self, InterviewType(interview_type).value)


DEFAULT_QUESTION_BANKS = QuestionBankConfig(
    technical=(
        "Walk me through how you would track down and fix a slow database query.",
        "Tell me about a tricky production bug you dealt with. How did you find the root cause?",
        "How would you design a service that has to handle millions of concurrent users?",
        "When would you choose a relational database over a document store, and why?",
        "How do you approach code review and keep quality high across a team?",
    ),
    behavioral=(
        "Tell me about a time you disagreed with a teammate. How did you work it out?",
        "Describe a difficult project you delivered and the obstacles you had to get past.",
        "Give me an example of leading something without having formal authority.",
        "Tell me about a time something you owned failed. What did you learn?",
        "How do you decide what to work on when several deadlines compete?",
    ),
    mixed=(
        "Tell me about a recent technical project and the decisions you drove on it.",
        "How do you debug a complex issue and keep your team informed along the way?",
        "Describe a time you had to pick up a new technology quickly. How did you go about it?",
        "Walk me through a system you built and the trade-offs you made designing it.",
        "How do you balance engineering quality against business deadlines?",
    ),
)

# ── FALLBACK ARTIFACTS ──

FALLBACK_GENERATED_QUESTIONS = GeneratedQuestions(
    role="Software Engineer",
    company=None,
    job_level="mid",
    skills=["Problem solving", "Communication", "Collaboration"],
    questions=[
        "Hi! Thanks for joining today. How are you doing?",
        "Great to meet you. Tell me a bit about yourself and what drew you to this position.",
        "I'd love to hear about a recent project you're proud of. What made it challenging?",
        "Walk me through how you approach a technical problem you haven't seen before.",
        "Tell me about a time you disagreed with a teammate. How did you handle it?",
        "Where do you see yourself growing in a role like this one?",
    ],
    fallback=True,
)

FALLBACK_FEEDBACK = InterviewFeedback(
    overall_score=7,
    interview_readiness="Need More Prep",
    strengths=["Clear communication", "Good structure"],
    weaknesses=["Need more examples", "Speak with more confidence"],
    filler_words=FillerWordSummary(count=5, examples=["um", "uh", "like"]),
    communication_score=7,
    technical_score=6,
    suggestions=[
        "Practice speaking more concisely",
        "Prepare specific examples beforehand",
        "Reduce filler words by pausing instead",
    ],
    answer_quality_by_question=[],
)
