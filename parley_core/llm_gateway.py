"""
PARLEY Async LLM Gateway
========================
Handles asynchronous interactions with the Groq API, including:
- Key Rotation (Round-Robin)
- Configurable attempt policy (single attempt by default)
- Model fallback cascade (empty unless configured)
"""

import os
import logging
from typing import List, Optional, Dict

from groq import AsyncGroq
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from .config import LLM_MODEL, LLM_FALLBACK_MODELS, LLM_TEMP, LLM_MAX_TOKENS, LLM_MAX_ATTEMPTS
from .errors import LLMError

logger = logging.getLogger(__name__)


class AsyncLLMGateway:
    """
    Gateway for asynchronous chat completions with key rotation.
    """

    def __init__(self, api_keys: Optional[List[str]] = None,
                 primary_model: str = LLM_MODEL,
                 fallback_models: Optional[List[str]] = None):
        self.api_keys: List[str] = api_keys or self._load_api_keys()
        if not self.api_keys:
            logger.critical("No GROQ_API_KEY found! Please set GROQ_API_KEY in .env")
            raise ValueError("No GROQ_API_KEY found")

        self.clients: List[AsyncGroq] = [AsyncGroq(api_key=k) for k in self.api_keys]
        self.current_client_idx = 0

        self.primary_model = primary_model
        self.fallback_models = list(LLM_FALLBACK_MODELS if fallback_models is None else fallback_models)

        logger.info(f"LLM Gateway initialized with {len(self.clients)} API key(s), model {self.primary_model}")

    def _load_api_keys(self) -> List[str]:
        keys = []
        for var_name in ["GROQ_API_KEY", "GROQ_API_KEY_2", "GROQ_API_KEY_3"]:
            key = os.getenv(var_name)
            if key and key not in keys:
                keys.append(key)
        return keys

    def get_client(self) -> AsyncGroq:
        """Get the next client in rotation."""
        client = self.clients[self.current_client_idx]
        self.current_client_idx = (self.current_client_idx + 1) % len(self.clients)
        return client

    @retry(
        stop=stop_after_attempt(max(1, LLM_MAX_ATTEMPTS)),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    async def _call_api_raw(self, messages: List[Dict[str, str]], model: str,
                            temperature: float = LLM_TEMP, max_tokens: int = LLM_MAX_TOKENS) -> str:
        client = self.get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
            return (response.choices[0].message.content or "").strip()
        except Exception as e:
            logger.error(f"API Call Failed ({model}): {str(e)}")
            # If rate limited, move off this key for the next request
            if "429" in str(e):
                logger.warning("Rate limit hit, rotating key immediately.")
                self.current_client_idx = (self.current_client_idx + 1) % len(self.clients)
            raise

    async def _complete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        models = [self.primary_model] + self.fallback_models
        last_error: Optional[Exception] = None
        for model in models:
            try:
                return await self._call_api_raw(messages, model, temperature, max_tokens)
            except Exception as e:
                last_error = e
                if model != models[-1]:
                    logger.warning(f"Falling back from model: {model}")
        raise LLMError("The language model is unavailable. Please try again.") from last_error

    async def generate_text(self, system_prompt: str, user_prompt: str,
                            temperature: float = LLM_TEMP, max_tokens: int = LLM_MAX_TOKENS) -> str:
        """
        Generate raw text response.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}
        ]
        return await self._complete(messages, temperature, max_tokens)

    async def generate_chat(self, system_prompt: str, history: List[Dict[str, str]],
                            temperature: float = LLM_TEMP, max_tokens: int = LLM_MAX_TOKENS) -> str:
        """
        Continue a conversation. Only user/assistant turns with content are forwarded.
        """
        valid = [
            {"role": m["role"], "content": m["content"]}
            for m in history
            if m.get("role") in ("user", "assistant") and m.get("content")
        ]
        messages = [{"role": "system", "content": system_prompt}] + valid
        return await self._complete(messages, temperature, max_tokens)

    async def generate_json(self, system_prompt: str, user_prompt: str,
                            temperature: float = 0.2, max_tokens: int = LLM_MAX_TOKENS) -> str:
        """
        Ask for a JSON object and return the raw reply. Callers coerce it with
        `parsing.parse_model_output`, which tolerates prose around the object.
        """
        enhanced_system_prompt = f"""{system_prompt}

Return ONLY the JSON object. Do not wrap it in markdown code blocks."""
        return await self.generate_text(enhanced_system_prompt, user_prompt, temperature, max_tokens)


# Global Gateway Instance
llm_gateway = AsyncLLMGateway()
