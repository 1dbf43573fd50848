"""
PARLEY Speech Metrics Analyzer
==============================
Deterministic scoring of a transcribed answer:
- Filler-word detection (fixed reference vocabulary, whole-word, case-insensitive)
- Words-per-minute pacing
- Answer-length classification
- Heuristic confidence score (0-100)

No I/O and no hidden state: identical inputs always produce identical metrics.
"""

import math
import re
from typing import Dict, Iterable, List

from .structs import AnswerLength, FillerWordCount, MetricsSummary, SpeechMetrics, SpeechReport, Turn

# ── REFERENCE VOCABULARY (order breaks count ties) ──
FILLER_WORDS = (
    "um",
    "uh",
    "like",
    "you know",
    "basically",
    "actually",
    "honestly",
    "literally",
    "so",
    "i mean",
    "kind of",
    "sort of",
    "well",
)

_FILLER_PATTERNS = [
    (word, re.compile(r"\b" + re.escape(word) + r"\b", re.IGNORECASE))
    for word in FILLER_WORDS
]

# ── SCORING CONSTANTS ──
BASELINE_CONFIDENCE = 75
FILLER_PENALTY_PER_WORD = 2
FILLER_PENALTY_CAP = 20
TOO_SHORT_PENALTY = 15
TOO_LONG_PENALTY = 10
GOOD_PACE_BONUS = 5

MIN_ANSWER_SECONDS = 30
MAX_ANSWER_SECONDS = 180
GOOD_PACE_WPM = (120, 160)
SLOW_PACE_WPM = 100
FAST_PACE_WPM = 180


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def count_words(transcript: str) -> int:
    return len(transcript.split())


def words_per_minute(word_count: int, duration_seconds: float) -> int:
    """Speaking rate. A non-positive duration yields 0 rather than a division error."""
    if duration_seconds <= 0:
        return 0
    return _round_half_up(word_count / duration_seconds * 60)


def detect_filler_words(transcript: str) -> List[FillerWordCount]:
    counts = []
    for word, pattern in _FILLER_PATTERNS:
        matches = len(pattern.findall(transcript))
        if matches:
            counts.append(FillerWordCount(word=word, count=matches))
    # sorted() is stable, so ties keep reference-list order
    return sorted(counts, key=lambda f: f.count, reverse=True)


def classify_answer_length(duration_seconds: float) -> AnswerLength:
    category = AnswerLength.GOOD
    if duration_seconds < MIN_ANSWER_SECONDS:
        category = AnswerLength.TOO_SHORT
    if duration_seconds > MAX_ANSWER_SECONDS:
        category = AnswerLength.TOO_LONG
    return category


def confidence_score(total_fillers: int, answer_length: AnswerLength, wpm: int) -> int:
    score = BASELINE_CONFIDENCE
    score -= min(total_fillers * FILLER_PENALTY_PER_WORD, FILLER_PENALTY_CAP)

    if answer_length == AnswerLength.TOO_SHORT:
        score -= TOO_SHORT_PENALTY
    elif answer_length == AnswerLength.TOO_LONG:
        score -= TOO_LONG_PENALTY

    if GOOD_PACE_WPM[0] <= wpm <= GOOD_PACE_WPM[1]:
        score += GOOD_PACE_BONUS

    return max(0, min(100, score))


def analyze_speech(transcript: str, duration_seconds: float) -> SpeechMetrics:
    """
    Score one spoken answer.

    Args:
        transcript: Transcribed answer text (may be empty).
        duration_seconds: Recording length as measured by the caller. Negative
            values are treated as zero.
    """
    duration = max(0.0, float(duration_seconds))
    transcript = transcript or ""

    word_count = count_words(transcript)
    wpm = words_per_minute(word_count, duration)
    fillers = detect_filler_words(transcript)
    answer_length = classify_answer_length(duration)
    total_fillers = sum(f.count for f in fillers)

    return SpeechMetrics(
        duration_seconds=duration,
        word_count=word_count,
        words_per_minute=wpm,
        filler_word_counts=fillers,
        confidence_score=confidence_score(total_fillers, answer_length, wpm),
        answer_length_category=answer_length,
    )


# ─── ADVICE LADDERS ─────────────────────────────────────────────────────────

def filler_word_advice(fillers: List[FillerWordCount]) -> str:
    if not fillers:
        return "Excellent! You avoided using filler words."

    top_filler = fillers[0].word
    total = sum(f.count for f in fillers)

    if total > 10:
        return f'You used {total} filler words. Try pausing instead of saying "{top_filler}". Silence is powerful!'
    elif total > 5:
        return f'Good effort! You used {total} filler words. Be mindful of "{top_filler}" and replace it with brief pauses.'
    return f"Great! Only {total} filler words used. Keep reducing them for an even more polished delivery."


def pace_advice(wpm: int) -> str:
    if wpm < SLOW_PACE_WPM:
        return "You're speaking a bit slowly. Pick up the pace slightly to keep the interviewer engaged."
    elif wpm > FAST_PACE_WPM:
        return "You're speaking quite fast. Slow down a little so every point lands and you have time to think."
    return "Your speaking pace is excellent: natural and engaging."


def answer_length_advice(duration_seconds: float) -> str:
    if duration_seconds < MIN_ANSWER_SECONDS:
        return "Your answer was brief. Add detail and a concrete example to fully address the question."
    elif duration_seconds > MAX_ANSWER_SECONDS:
        return "Your answer was lengthy. Aim to be more concise while still covering the key points."
    return "Great answer length: concise yet detailed."


def speech_report(metrics: SpeechMetrics) -> SpeechReport:
    return SpeechReport(
        metrics=metrics,
        filler_advice=filler_word_advice(metrics.filler_word_counts),
        pace_advice=pace_advice(metrics.words_per_minute),
        length_advice=answer_length_advice(metrics.duration_seconds),
    )


# ─── SESSION AGGREGATES ─────────────────────────────────────────────────────

def merge_filler_counts(groups: Iterable[List[FillerWordCount]]) -> List[FillerWordCount]:
    totals: Dict[str, int] = {word: 0 for word in FILLER_WORDS}
    for group in groups:
        for filler in group:
            totals[filler.word] = totals.get(filler.word, 0) + filler.count
    merged = [FillerWordCount(word=w, count=c) for w, c in totals.items() if c > 0]
    return sorted(merged, key=lambda f: f.count, reverse=True)


def summarize_metrics(turns: List[Turn]) -> MetricsSummary:
    """Aggregate the metrics of every answered turn in a session."""
    scored = [t.metrics for t in turns if t.metrics is not None]
    if not scored:
        return MetricsSummary()

    total_seconds = sum(m.duration_seconds for m in scored)
    total_words = sum(m.word_count for m in scored)

    return MetricsSummary(
        answered_turns=len(scored),
        total_words=total_words,
        total_speaking_seconds=total_seconds,
        average_words_per_minute=words_per_minute(total_words, total_seconds),
        average_confidence=_round_half_up(sum(m.confidence_score for m in scored) / len(scored)),
        filler_word_counts=merge_filler_counts(m.filler_word_counts for m in scored),
    )
