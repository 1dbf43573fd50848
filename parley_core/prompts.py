"""
Prompt construction for every language-model call the service makes.
"""

import json
from typing import Dict, List, Optional

from .structs import MetricsSummary, Turn

QUESTION_GENERATION_PROMPT = """You are a friendly, professional interviewer preparing a real interview conversation.

Your task is to:
1. Extract the key skills, requirements and role details from the job posting
2. Generate 6-7 conversational interview questions that sound natural when spoken
3. Mix question types: warm-up, technical depth, behavioral and real-world scenarios

Make the questions conversational:
- Open with a warm greeting such as "Hi! Thanks for joining today. How are you doing?"
- Use phrasings like "Tell me about...", "Walk me through...", "I'd love to hear about..."
- Reference specific technologies from the posting naturally
- Flow from greeting to introduction, experience, technical depth and wrap-up

Respond with JSON only, using this exact structure:
{
  "role": "Job title from the posting",
  "company": "Company name if mentioned, otherwise null",
  "jobLevel": "entry/mid/senior based on the requirements",
  "skills": ["skill1", "skill2"],
  "questions": ["question 1", "question 2"]
}"""

FEEDBACK_SCHEMA = """{
  "overallScore": number (1-10),
  "interviewReadiness": "Ready to Apply" | "Need More Prep" | "Needs Significant Work",
  "strengths": [3-4 key strengths],
  "weaknesses": [3-4 areas to improve],
  "fillerWords": {"count": number, "examples": [string]},
  "communicationScore": number (1-10),
  "technicalScore": number (1-10),
  "suggestions": [5-7 specific, actionable suggestions],
  "answerQualityByQuestion": [{"questionNumber": number, "quality": number (1-10), "feedback": string}]
}"""

_LEVEL_CONTEXT = {
    "entry": (
        "You are interviewing a junior candidate. Keep things straightforward but insightful.",
        "If an answer is vague, gently ask for a concrete example. Be encouraging.",
    ),
    "mid": (
        "You are interviewing a mid-level candidate. Probe their decision-making and experience.",
        "Dig into what they learned and what they would do differently.",
    ),
    "senior": (
        "You are interviewing a senior candidate. Challenge their thinking on trade-offs and architecture.",
        "Focus on trade-offs, scalability and how they would mentor others.",
    ),
}

_ENTRY_ALIASES = {"entry", "junior", "intern", "graduate", "associate"}
_SENIOR_ALIASES = {"senior", "lead", "staff", "principal", "architect"}


def normalize_level(job_level: Optional[str]) -> str:
    """Map free-text seniority from a posting onto entry/mid/senior."""
    words = set((job_level or "").lower().replace("-", " ").replace("/", " ").split())
    if words & _SENIOR_ALIASES:
        return "senior"
    if words & _ENTRY_ALIASES:
        return "entry"
    return "mid"


def question_generation_user_prompt(job_posting: str) -> str:
    return f"Analyze this job posting and generate interview questions:\n\n{job_posting.strip()}"


def interviewer_system_prompt(
    interview_type: str,
    job_level: str,
    question_index: int,
    total_questions: int,
    job_role: Optional[str] = None,
    recent_answers: Optional[List[str]] = None,
) -> str:
    level_context, guidance = _LEVEL_CONTEXT[normalize_level(job_level)]
    role_context = ""
    if job_role:
        role_context = f"You are interviewing for the position of {job_role} ({job_level} level)."

    context_line = ""
    if recent_answers:
        snippets = " | ".join(a[:100] for a in recent_answers[-2:])
        context_line = f"\nContext: the candidate has recently talked about: {snippets}"

    return f"""You are a professional interviewer running a realistic {interview_type} voice interview.
Everything you write is converted to speech, so write exactly how a person talks out loud.
{role_context}
{level_context}

This is question {question_index + 1} of {total_questions}.

Rules for voice output:
- Use contractions and a natural, human tone
- Keep it very short: one or two sentences
- Do not ask a new question; briefly acknowledge the candidate's answer
- {guidance}
- After the final answer, close warmly, e.g. "Perfect, thanks for sharing that with me today."
{context_line}
Good: "Got it. That makes sense."  Bad: "That's interesting. Can you walk me through how you'd scale that?\""""


def opening_user_prompt(question: str) -> str:
    return f'Say this question naturally, as if speaking: "{question}"'


def conversation_messages(turns: List[Turn], pending_question: str, answer: str) -> List[Dict[str, str]]:
    """Chat history for the next acknowledgment: prior exchanges plus the answer just given."""
    messages: List[Dict[str, str]] = []
    for turn in turns:
        messages.append({"role": "assistant", "content": turn.question})
        messages.append({"role": "user", "content": turn.user_answer})
        messages.append({"role": "assistant", "content": turn.interviewer_reply})
    messages.append({"role": "assistant", "content": pending_question})
    messages.append({"role": "user", "content": answer})
    return messages


def feedback_system_prompt(interview_type: str, job_level: str) -> str:
    return f"""You are an expert interview coach giving detailed feedback on {interview_type} interviews for {job_level}-level candidates.

Respond with JSON only, in this format:
{FEEDBACK_SCHEMA}"""


def feedback_user_prompt(interview_type: str, job_level: str, turns: List[Turn], summary: MetricsSummary) -> str:
    exchanges = []
    for number, turn in enumerate(turns, start=1):
        block = f"Question {number}: {turn.question}\nCandidate Answer: {turn.user_answer}"
        if turn.metrics is not None:
            block += (
                f"\nDelivery: {turn.metrics.words_per_minute} wpm, "
                f"{turn.metrics.total_fillers} filler words, "
                f"confidence {turn.metrics.confidence_score}/100"
            )
        exchanges.append(block)

    fillers = {f.word: f.count for f in summary.filler_word_counts}
    transcript = "\n\n".join(exchanges)
    return f"""Analyze this {interview_type} interview ({job_level} level).
Measured filler words across the interview: {json.dumps(fillers)}

{transcript}

Provide structured feedback as JSON."""
