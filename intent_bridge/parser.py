"""
Intent parser: free text -> ParsedIntent.

Stages, in order:
1. Memoized result for the normalized text (bounded LRU).
2. Language-model delegate, only when one is configured and the text looks
   like an API request. Any delegate failure falls through.
3. Deterministic rule table, first match wins.
4. Fallback intent (service "unknown") when no rule matches.

Parsing never raises. Every result is tagged with the stage that produced
it so callers and tests can see which path answered.
"""

import asyncio
import json
import logging
import os
import re
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .cache import LRUCache
from .delegate import SYSTEM_PROMPT, ChatDelegate
from .exceptions import DelegateError
from .models import ParsedIntent, ParseResult, ParseStage
from .rules import fallback_intent, match_rules

logger = logging.getLogger("intent-bridge.parser")


def _any_kw(*words: str) -> re.Pattern:
    """Build a regex that matches if ANY word appears."""
    escaped = [re.escape(w) for w in words]
    return re.compile(r"\b(?:" + "|".join(escaped) + r")\b", re.IGNORECASE)


# Words that mark a request as an API call worth sending to the delegate
_DELEGATE_TRIGGERS = _any_kw(
    "api", "post", "tweet", "send", "message", "create", "get", "fetch",
    "check", "search", "find", "charge", "pay", "email", "sms", "weather",
    "news", "repo", "repository",
)


def _get_config() -> Dict[str, Any]:
    return {
        "cache_size": int(os.getenv("INTENT_BRIDGE_PARSE_CACHE_SIZE", "1000")),
        "delegate_timeout": float(os.getenv("INTENT_BRIDGE_LLM_TIMEOUT", "8")),
    }


def normalize_text(text: str) -> str:
    """Cache key for the parse memo."""
    return (text or "").strip().lower()


def is_api_request(text: str) -> bool:
    return bool(_DELEGATE_TRIGGERS.search(text or ""))


def intent_from_json(payload: str) -> ParsedIntent:
    """Validate delegate JSON into a ParsedIntent. Raises DelegateError."""
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        raise DelegateError(f"Delegate returned malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise DelegateError(f"Delegate returned {type(data).__name__}, expected an object")

    missing = [f for f in ("action", "service", "resource") if not data.get(f)]
    if missing:
        raise DelegateError(f"Delegate parse missing fields: {', '.join(missing)}")

    parameters = data.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise DelegateError("Delegate parameters must be an object")

    try:
        return ParsedIntent(
            action=str(data["action"]).upper(),
            service=str(data["service"]).lower(),
            resource=str(data["resource"]),
            parameters=parameters,
        )
    except ValidationError as e:
        raise DelegateError(f"Delegate parse failed validation: {e}") from e


class IntentParser:
    """Parses free-text intents with memoization and graceful degradation."""

    def __init__(
        self,
        delegate: Optional[ChatDelegate] = None,
        cache_size: Optional[int] = None,
        delegate_timeout: Optional[float] = None,
    ):
        cfg = _get_config()
        self.delegate = delegate
        self.delegate_timeout = delegate_timeout if delegate_timeout is not None else cfg["delegate_timeout"]
        self.cache: LRUCache[ParsedIntent] = LRUCache(max_size=cache_size or cfg["cache_size"])

    async def parse(self, text: str) -> ParsedIntent:
        result = await self.parse_with_stage(text)
        return result.intent

    async def parse_with_stage(self, text: str) -> ParseResult:
        """Parse text and report which stage produced the result."""
        key = normalize_text(text)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Parse cache hit for '{key[:80]}'")
            return ParseResult(intent=cached, stage=ParseStage.CACHE)

        result = await self._parse_uncached(text)
        self.cache.set(key, result.intent)
        return result

    async def _parse_uncached(self, text: str) -> ParseResult:
        if self.delegate is not None and is_api_request(text):
            try:
                intent = await self._parse_with_delegate(text)
                logger.info(f"Delegate parsed intent: {intent.action} {intent.service}/{intent.resource}")
                return ParseResult(intent=intent, stage=ParseStage.DELEGATE)
            except DelegateError as e:
                logger.warning(f"Delegate parse failed, using rules: {e}")

        intent = match_rules(text or "")
        if intent is not None:
            return ParseResult(intent=intent, stage=ParseStage.RULES)

        logger.info(f"No rule matched '{(text or '')[:80]}', using fallback intent")
        return ParseResult(intent=fallback_intent(text or ""), stage=ParseStage.FALLBACK)

    async def _parse_with_delegate(self, text: str) -> ParsedIntent:
        try:
            payload = await asyncio.wait_for(
                self.delegate(SYSTEM_PROMPT, text),
                timeout=self.delegate_timeout,
            )
        except asyncio.TimeoutError as e:
            raise DelegateError(f"Delegate timed out after {self.delegate_timeout}s") from e
        except Exception as e:
            raise DelegateError(f"Delegate call failed: {e}") from e
        return intent_from_json(payload)

    def clear_cache(self) -> None:
        self.cache.clear()
