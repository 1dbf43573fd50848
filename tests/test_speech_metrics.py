import unittest
import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from parley_core.speech_metrics import (
    analyze_speech, answer_length_advice, filler_word_advice, pace_advice,
    speech_report, summarize_metrics, words_per_minute
)
from parley_core.structs import AnswerLength, FillerWordCount, Turn


def words(n):
    return " ".join(["word"] * n)


class TestSpeechMetrics(unittest.TestCase):

    def test_filler_words_are_case_insensitive_and_whole_word(self):
        metrics = analyze_speech("Um, I, uh, think so", 60)

        self.assertEqual(metrics.word_count, 5)
        self.assertEqual(metrics.words_per_minute, 5)
        self.assertEqual(
            [(f.word, f.count) for f in metrics.filler_word_counts],
            [("um", 1), ("uh", 1), ("so", 1)]
        )
        self.assertEqual(metrics.answer_length_category, AnswerLength.GOOD)
        self.assertEqual(metrics.confidence_score, 75 - 6)

    def test_partial_words_do_not_count(self):
        metrics = analyze_speech("Likely unlike LIKE like umbrella sober", 60)
        self.assertEqual([(f.word, f.count) for f in metrics.filler_word_counts], [("like", 2)])

    def test_multi_word_fillers(self):
        metrics = analyze_speech("You know, I mean, it was kind of sort of fine", 60)
        found = {f.word: f.count for f in metrics.filler_word_counts}
        self.assertEqual(found, {"you know": 1, "i mean": 1, "kind of": 1, "sort of": 1})

    def test_fillers_sorted_by_count_with_reference_order_ties(self):
        metrics = analyze_speech("well so so so um well uh", 60)
        self.assertEqual(
            [(f.word, f.count) for f in metrics.filler_word_counts],
            [("so", 3), ("well", 2), ("um", 1), ("uh", 1)]
        )

    def test_short_answer_at_good_pace(self):
        metrics = analyze_speech(words(50), 20)

        self.assertEqual(metrics.words_per_minute, 150)
        self.assertEqual(metrics.answer_length_category, AnswerLength.TOO_SHORT)
        self.assertEqual(metrics.confidence_score, 75 - 0 - 15 + 5)

    def test_words_per_minute_rounds_half_up(self):
        # 1 word in 24s is exactly 2.5 wpm
        self.assertEqual(analyze_speech("hello", 24).words_per_minute, 3)
        self.assertEqual(words_per_minute(7, 60), 7)
        for count, duration in [(13, 7.0), (99, 41.5), (250, 93.3), (1, 0.4)]:
            expected = int(count / duration * 60 + 0.5)
            self.assertEqual(words_per_minute(count, duration), expected)

    def test_zero_duration_policy(self):
        metrics = analyze_speech("I think I have it", 0)

        self.assertEqual(metrics.words_per_minute, 0)
        self.assertEqual(metrics.answer_length_category, AnswerLength.TOO_SHORT)
        self.assertEqual(metrics.confidence_score, 60)

    def test_negative_duration_treated_as_zero(self):
        metrics = analyze_speech("hello there", -5)
        self.assertEqual(metrics.duration_seconds, 0)
        self.assertEqual(metrics.words_per_minute, 0)

    def test_empty_transcript(self):
        metrics = analyze_speech("", 45)
        self.assertEqual(metrics.word_count, 0)
        self.assertEqual(metrics.filler_word_counts, [])
        self.assertEqual(metrics.confidence_score, 75)

    def test_length_boundaries(self):
        self.assertEqual(analyze_speech("a", 29.9).answer_length_category, AnswerLength.TOO_SHORT)
        self.assertEqual(analyze_speech("a", 30).answer_length_category, AnswerLength.GOOD)
        self.assertEqual(analyze_speech("a", 180).answer_length_category, AnswerLength.GOOD)
        self.assertEqual(analyze_speech("a", 180.5).answer_length_category, AnswerLength.TOO_LONG)

    def test_pace_bonus_band(self):
        self.assertEqual(analyze_speech(words(119), 60).confidence_score, 75)
        self.assertEqual(analyze_speech(words(120), 60).confidence_score, 80)
        self.assertEqual(analyze_speech(words(160), 60).confidence_score, 80)
        self.assertEqual(analyze_speech(words(161), 60).confidence_score, 75)

    def test_filler_penalty_is_capped(self):
        metrics = analyze_speech("um " * 100, 200)
        # -20 filler cap, -10 too long, 30 wpm earns no bonus
        self.assertEqual(metrics.confidence_score, 45)

    def test_confidence_always_within_bounds(self):
        transcripts = ["", "um", "um uh like so well " * 50, words(1000)]
        for transcript in transcripts:
            for duration in [0, 1, 29, 30, 90, 180, 181, 10_000]:
                score = analyze_speech(transcript, duration).confidence_score
                self.assertGreaterEqual(score, 0)
                self.assertLessEqual(score, 100)

    def test_analysis_is_idempotent(self):
        transcript = "So, basically, I led the migration and, um, it went well."
        self.assertEqual(analyze_speech(transcript, 42), analyze_speech(transcript, 42))


class TestAdvice(unittest.TestCase):

    def fillers(self, total):
        return [FillerWordCount(word="um", count=total)]

    def test_filler_advice_ladder(self):
        self.assertIn("avoided", filler_word_advice([]))
        self.assertIn("Try pausing", filler_word_advice(self.fillers(11)))
        self.assertIn("Good effort", filler_word_advice(self.fillers(10)))
        self.assertIn("Good effort", filler_word_advice(self.fillers(6)))
        self.assertIn("Only 5", filler_word_advice(self.fillers(5)))

    def test_pace_advice_ladder(self):
        self.assertIn("slowly", pace_advice(99))
        self.assertIn("excellent", pace_advice(100))
        self.assertIn("excellent", pace_advice(180))
        self.assertIn("fast", pace_advice(181))

    def test_length_advice_ladder(self):
        self.assertIn("brief", answer_length_advice(29))
        self.assertIn("Great answer length", answer_length_advice(30))
        self.assertIn("Great answer length", answer_length_advice(180))
        self.assertIn("lengthy", answer_length_advice(181))

    def test_speech_report_bundles_advice(self):
        report = speech_report(analyze_speech(words(50), 20))
        self.assertIn("brief", report.length_advice)
        self.assertIn("excellent", report.pace_advice)
        self.assertIn("avoided", report.filler_advice)


class TestSummary(unittest.TestCase):

    def test_summary_merges_turns(self):
        turns = [
            Turn(question="Q1", user_answer="a", interviewer_reply="ok",
                 metrics=analyze_speech("um so " + words(58), 30)),
            Turn(question="Q2", user_answer="b", interviewer_reply="ok",
                 metrics=analyze_speech("so so " + words(88), 30)),
            Turn(question="Q3", user_answer="c", interviewer_reply="ok", metrics=None),
        ]
        summary = summarize_metrics(turns)

        self.assertEqual(summary.answered_turns, 2)
        self.assertEqual(summary.total_words, 150)
        self.assertEqual(summary.average_words_per_minute, 150)
        self.assertEqual([(f.word, f.count) for f in summary.filler_word_counts], [("so", 3), ("um", 1)])

    def test_empty_summary(self):
        summary = summarize_metrics([])
        self.assertEqual(summary.answered_turns, 0)
        self.assertEqual(summary.total_fillers, 0)


if __name__ == '__main__':
    unittest.main()
