"""
Optional language-model delegate for intent parsing.

The parser only needs a chat-completion capability: a system + user message
pair in, JSON text out. OpenAIDelegate provides it through the OpenAI SDK,
which also covers OpenAI-compatible endpoints (DeepSeek and similar) via
``INTENT_BRIDGE_LLM_BASE_URL``.
"""

import logging
import os
from typing import Awaitable, Callable, Dict, Optional

from openai import AsyncOpenAI

logger = logging.getLogger("intent-bridge.delegate")

# (system_prompt, user_text) -> JSON text
ChatDelegate = Callable[[str, str], Awaitable[str]]

SYSTEM_PROMPT = """You are an intent parser for API calls. Parse the user's intent into a structured format.

Return a JSON object with:
- action: GET, POST, CREATE, UPDATE, DELETE, SEND, FETCH, SEARCH
- service: twitter, slack, github, weather, news, currency, joke, email, etc.
- resource: message, post, repo, forecast, headlines, etc.
- parameters: key-value pairs of data

Examples:
"post hello world to twitter" -> {"action":"CREATE","service":"twitter","resource":"post","parameters":{"text":"hello world"}}
"get weather in New York" -> {"action":"GET","service":"weather","resource":"forecast","parameters":{"location":"New York"}}
"send message saying hi to slack channel general" -> {"action":"SEND","service":"slack","resource":"message","parameters":{"text":"hi","channel":"general"}}"""


def _get_config() -> Dict[str, Optional[str]]:
    return {
        "api_key": os.getenv("INTENT_BRIDGE_LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
        "model": os.getenv("INTENT_BRIDGE_LLM_MODEL", "gpt-3.5-turbo-0125"),
        "base_url": os.getenv("INTENT_BRIDGE_LLM_BASE_URL") or None,
    }


class OpenAIDelegate:
    """Chat-completion delegate backed by ``openai.AsyncOpenAI``."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo-0125",
        base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)
        logger.info(f"Language-model delegate initialized with model: {self.model}")

    async def __call__(self, system_prompt: str, user_text: str) -> str:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_text},
            ],
            response_format={"type": "json_object"},
            temperature=0,
            max_tokens=150,
        )
        return response.choices[0].message.content or ""


def create_default_delegate() -> Optional[OpenAIDelegate]:
    """Build a delegate from the environment, or None when no key is set."""
    cfg = _get_config()
    if not cfg["api_key"]:
        logger.warning("No language-model API key configured, using rule-based parsing only")
        return None
    return OpenAIDelegate(
        api_key=cfg["api_key"],
        model=cfg["model"],
        base_url=cfg["base_url"],
    )
