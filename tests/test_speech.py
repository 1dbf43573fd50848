import unittest
import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, AsyncMock, patch
import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ["GROQ_API_KEY"] = "gsk_test_key_for_unit_tests"

from parley_core.errors import InvalidInputError, SpeechSynthesisError, TranscriptionError
from parley_core.speech import (
    clamp_speed, estimate_speech_duration, generate_speech, recorded_answer,
    resolve_voice, speed_to_rate, transcribe_audio
)


def fake_upload(*chunks):
    upload = MagicMock()
    upload.read = AsyncMock(side_effect=list(chunks) + [b""])
    return upload


class TestVoiceParameters(unittest.TestCase):

    def test_resolve_voice(self):
        self.assertEqual(resolve_voice("nova"), "en-US-JennyNeural")
        self.assertEqual(resolve_voice("ONYX"), "en-US-AndrewNeural")
        self.assertEqual(resolve_voice(None), "en-US-AriaNeural")
        with self.assertRaises(InvalidInputError):
            resolve_voice("robot")

    def test_speed(self):
        self.assertEqual(clamp_speed(None), 0.95)
        self.assertEqual(clamp_speed(10), 4.0)
        self.assertEqual(clamp_speed(0.1), 0.25)
        self.assertEqual(speed_to_rate(1.1), "+10%")
        self.assertEqual(speed_to_rate(0.95), "-5%")
        self.assertEqual(speed_to_rate(1.0), "+0%")

    def test_estimate_duration(self):
        self.assertEqual(estimate_speech_duration("one two three four five", 1.0), 2.0)
        self.assertEqual(estimate_speech_duration("", 1.0), 0.0)


class TestRecordedAnswer(unittest.TestCase):

    def test_file_written_and_removed(self):
        async def run_test():
            async with recorded_answer(fake_upload(b"abc", b"def"), "s1") as path:
                with open(path, "rb") as f:
                    self.assertEqual(f.read(), b"abcdef")
            self.assertFalse(os.path.exists(path))

        asyncio.run(run_test())

    def test_file_removed_when_processing_fails(self):
        async def run_test():
            seen = []
            with self.assertRaises(TranscriptionError):
                async with recorded_answer(fake_upload(b"abc")) as path:
                    seen.append(path)
                    raise TranscriptionError("boom")
            self.assertFalse(os.path.exists(seen[0]))

        asyncio.run(run_test())

    def test_empty_upload_rejected(self):
        async def run_test():
            with self.assertRaises(InvalidInputError):
                async with recorded_answer(fake_upload()):
                    self.fail("block should not run")

        asyncio.run(run_test())


class TestSpeechServices(unittest.TestCase):

    @patch('parley_core.speech.llm_gateway')
    def test_transcribe(self, mock_llm):
        client = MagicMock()
        client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="  Hello there.  "))
        mock_llm.get_client.return_value = client

        async def run_test():
            async with recorded_answer(fake_upload(b"RIFF....")) as path:
                text = await transcribe_audio(path)
            self.assertEqual(text, "Hello there.")
            kwargs = client.audio.transcriptions.create.call_args.kwargs
            self.assertEqual(kwargs["model"], "whisper-large-v3")
            self.assertEqual(kwargs["language"], "en")
            self.assertEqual(kwargs["file"][1], b"RIFF....")

        asyncio.run(run_test())

    @patch('parley_core.speech.llm_gateway')
    def test_transcribe_failure(self, mock_llm):
        client = MagicMock()
        client.audio.transcriptions.create = AsyncMock(side_effect=RuntimeError("503"))
        mock_llm.get_client.return_value = client

        async def run_test():
            async with recorded_answer(fake_upload(b"data")) as path:
                with self.assertRaises(TranscriptionError):
                    await transcribe_audio(path)

        asyncio.run(run_test())

    @patch('parley_core.speech.edge_tts.Communicate')
    def test_generate_speech(self, mock_communicate):
        async def save(path):
            with open(path, "wb") as f:
                f.write(b"ID3")

        mock_communicate.return_value.save = AsyncMock(side_effect=save)

        async def run_test():
            path = await generate_speech("Tell me about yourself.", "echo", 1.1)
            try:
                self.assertTrue(path.endswith(".mp3"))
                mock_communicate.assert_called_once_with("Tell me about yourself.", "en-US-GuyNeural", rate="+10%")
            finally:
                os.remove(path)

        asyncio.run(run_test())

    @patch('parley_core.speech.edge_tts.Communicate')
    def test_generate_speech_failure(self, mock_communicate):
        mock_communicate.return_value.save = AsyncMock(side_effect=ConnectionError("offline"))

        async def run_test():
            with self.assertRaises(SpeechSynthesisError):
                await generate_speech("Hello")

        asyncio.run(run_test())

    def test_generate_speech_validates_input(self):
        async def run_test():
            with self.assertRaises(InvalidInputError):
                await generate_speech("   ")
            with self.assertRaises(InvalidInputError):
                await generate_speech("Hello", voice="robot")

        asyncio.run(run_test())


if __name__ == '__main__':
    unittest.main()
