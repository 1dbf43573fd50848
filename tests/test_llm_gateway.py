import unittest
import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock, AsyncMock
import os
import sys
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
os.environ["GROQ_API_KEY"] = "gsk_test_key_for_unit_tests"

from parley_core.errors import LLMError
from parley_core.llm_gateway import AsyncLLMGateway


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def gateway_with(create, fallback_models=None, keys=("k1",)):
    gateway = AsyncLLMGateway(api_keys=list(keys), primary_model="primary", fallback_models=fallback_models or [])
    clients = []
    for _ in keys:
        client = MagicMock()
        client.chat.completions.create = create
        clients.append(client)
    gateway.clients = clients
    return gateway


class TestLLMGateway(unittest.TestCase):

    def test_generate_text(self):
        create = AsyncMock(return_value=completion("  Hello!  "))
        gateway = gateway_with(create)

        async def run_test():
            self.assertEqual(await gateway.generate_text("sys", "hi", temperature=0.8, max_tokens=80), "Hello!")
            kwargs = create.call_args.kwargs
            self.assertEqual(kwargs["model"], "primary")
            self.assertEqual(kwargs["messages"][0], {"role": "system", "content": "sys"})
            self.assertEqual(kwargs["max_tokens"], 80)

        asyncio.run(run_test())

    def test_chat_history_filtered(self):
        create = AsyncMock(return_value=completion("ok"))
        gateway = gateway_with(create)
        history = [
            {"role": "assistant", "content": "Q1?"},
            {"role": "system", "content": "ignore me"},
            {"role": "user", "content": ""},
            {"role": "user", "content": "My answer"},
        ]

        async def run_test():
            await gateway.generate_chat("sys", history)
            roles = [m["role"] for m in create.call_args.kwargs["messages"]]
            self.assertEqual(roles, ["system", "assistant", "user"])

        asyncio.run(run_test())

    def test_single_attempt_raises_llm_error(self):
        create = AsyncMock(side_effect=RuntimeError("500 internal"))
        gateway = gateway_with(create)

        async def run_test():
            with self.assertRaises(LLMError):
                await gateway.generate_text("sys", "hi")
            self.assertEqual(create.await_count, 1)

        asyncio.run(run_test())

    def test_fallback_model_used(self):
        create = AsyncMock(side_effect=[RuntimeError("model decommissioned"), completion("from fallback")])
        gateway = gateway_with(create, fallback_models=["backup"])

        async def run_test():
            self.assertEqual(await gateway.generate_text("sys", "hi"), "from fallback")
            self.assertEqual(create.call_args.kwargs["model"], "backup")

        asyncio.run(run_test())

    def test_keys_rotate(self):
        gateway = gateway_with(AsyncMock(return_value=completion("ok")), keys=("k1", "k2"))
        first, second, third = gateway.get_client(), gateway.get_client(), gateway.get_client()

        self.assertIsNot(first, second)
        self.assertIs(first, third)

    def test_json_request_adds_instruction(self):
        create = AsyncMock(return_value=completion('{"a": 1}'))
        gateway = gateway_with(create)

        async def run_test():
            raw = await gateway.generate_json("Give feedback.", "transcript")
            self.assertEqual(raw, '{"a": 1}')
            system = create.call_args.kwargs["messages"][0]["content"]
            self.assertIn("Return ONLY the JSON object", system)
            self.assertEqual(create.call_args.kwargs["temperature"], 0.2)

        asyncio.run(run_test())


if __name__ == '__main__':
    unittest.main()
