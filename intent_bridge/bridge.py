"""
IntentBridge orchestrator.

Runs one free-text intent through the pipeline:

    integration request?  -> API learner (returns early)
    learned pattern?      -> fast path, skip the parser
    otherwise             -> parser -> registry -> executor
    then                  -> normalizer -> learning engine -> envelope

Every failure mode has a defined degraded output; execute() never raises.
"""

import logging
import re
import time
from typing import Any, Dict, List, Optional

from .api_learner import APILearner
from .catalogue import build_default_registry
from .delegate import create_default_delegate
from .executor import APIExecutor
from .learning import LearningEngine
from .models import BridgeResponse, ExecutionResult, ParsedIntent, ParseStage, ResolvedAPI
from .normalizer import ResponseNormalizer
from .parser import IntentParser
from .registry import APIRegistry

logger = logging.getLogger("intent-bridge.bridge")

_INTEGRATE = re.compile(r"\bintegrate\b", re.IGNORECASE)
_ADD = re.compile(r"\badd\b", re.IGNORECASE)
_API = re.compile(r"\bapi\b", re.IGNORECASE)


def is_integration_request(text: str) -> bool:
    """'integrate ...' or 'add ... api' requests register a new service."""
    return bool(_INTEGRATE.search(text) or (_ADD.search(text) and _API.search(text)))


def readable_message(normalized: Dict[str, Any]) -> str:
    """One-line human message for a normalized envelope."""
    kind = normalized.get("type")
    summary = normalized.get("summary")

    if kind == "weather":
        return f"Weather in {normalized.get('location')}: {summary}"
    if kind == "payment":
        return f"Payment via {normalized.get('platform')}: {summary}"
    if kind in ("communication", "email"):
        return f"Message sent: {summary}"
    if kind == "entertainment":
        return str(normalized.get("content"))
    if kind in ("news", "currency", "repositories", "github_resource"):
        return str(summary)
    if kind == "empty":
        return "Operation completed with no data returned"
    return "Operation completed successfully"


class IntentBridge:
    """Intent -> API call orchestrator."""

    def __init__(
        self,
        registry: Optional[APIRegistry] = None,
        parser: Optional[IntentParser] = None,
        executor: Optional[APIExecutor] = None,
        normalizer: Optional[ResponseNormalizer] = None,
        learning: Optional[LearningEngine] = None,
        api_learner: Optional[APILearner] = None,
    ):
        self.registry = registry if registry is not None else build_default_registry()
        self.parser = parser or IntentParser()
        self.executor = executor or APIExecutor()
        self.normalizer = normalizer or ResponseNormalizer()
        self.learning = learning or LearningEngine()
        # The learner writes into the same registry the lookups read from
        self.api_learner = api_learner or APILearner(self.registry)
        logger.info(f"IntentBridge ready with {len(self.registry)} APIs")

    async def __aenter__(self) -> "IntentBridge":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.executor.aclose()

    async def execute(self, text: str) -> BridgeResponse:
        """Execute one intent. Always returns a BridgeResponse."""
        start = time.perf_counter()

        try:
            logger.info(f"Intent: '{text[:200]}'")
            if is_integration_request(text):
                logger.info("Routing to API learner")
                return self.api_learner.learn(text)

            learned = self.learning.check_pattern(text)
            if learned is not None:
                resolved = self._find(learned.parsed)
                if resolved is not None:
                    logger.info(f"Using learned pattern (fast path) for '{learned.key}'")
                    return await self._run(text, learned.parsed, resolved, start, fast_path=True)
                logger.info(f"Learned pattern '{learned.key}' no longer resolves, re-parsing")

            result = await self.parser.parse_with_stage(text)
            parsed = result.intent
            logger.info(f"Parsed ({result.stage.value}): {parsed.action} {parsed.service}/{parsed.resource}")

            resolved = self._find(parsed)
            if resolved is None:
                return self._not_found(parsed, result.stage)

            logger.info(f"Found API: {resolved.name} ({resolved.endpoint_key})")
            return await self._run(text, parsed, resolved, start, parse_stage=result.stage)

        except Exception as e:
            logger.error(f"Intent execution failed: {e}", exc_info=True)
            return BridgeResponse(
                success=False,
                error=f"Intent execution failed: {e}",
                execution_time_ms=self._elapsed(start),
            )

    def _find(self, parsed: ParsedIntent) -> Optional[ResolvedAPI]:
        return self.registry.find_api(parsed.service, parsed.action, parsed.resource)

    def _not_found(self, parsed: ParsedIntent, stage: ParseStage) -> BridgeResponse:
        available = self.registry.list()
        logger.info(f"API not found: {parsed.service} ({parsed.endpoint_key})")
        return BridgeResponse(
            success=False,
            error=f"API not found: {parsed.service}",
            suggestion=f"Try one of: {', '.join(available)}",
            available_apis=available,
            parse_stage=stage,
        )

    async def _run(
        self,
        text: str,
        parsed: ParsedIntent,
        resolved: ResolvedAPI,
        start: float,
        fast_path: bool = False,
        parse_stage: Optional[ParseStage] = None,
    ) -> BridgeResponse:
        result = await self.executor.execute(resolved, parsed.parameters)
        elapsed = self._elapsed(start)
        self.learning.record_execution(text, parsed, resolved, result, elapsed)
        logger.info(f"Execution time: {elapsed}ms")
        return self._format(result, resolved, elapsed, fast_path, parse_stage)

    def _format(
        self,
        result: ExecutionResult,
        resolved: ResolvedAPI,
        elapsed: float,
        fast_path: bool,
        parse_stage: Optional[ParseStage],
    ) -> BridgeResponse:
        if not result.success:
            return BridgeResponse(
                success=False,
                error=result.error or f"{resolved.name} call failed",
                mock=result.mock,
                execution_time_ms=elapsed,
                service=resolved.name,
                fast_path=fast_path,
                parse_stage=parse_stage,
            )

        normalized = self.normalizer.normalize(resolved.key, result.data)
        return BridgeResponse(
            success=True,
            message=readable_message(normalized),
            data=normalized,
            raw=result.data,
            mock=result.mock,
            execution_time_ms=elapsed,
            service=resolved.name,
            fast_path=fast_path,
            parse_stage=parse_stage,
        )

    @staticmethod
    def _elapsed(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)

    def list_apis(self) -> List[str]:
        return self.registry.list()

    def get_stats(self) -> Dict[str, Any]:
        return self.learning.get_stats()


def create_bridge(
    mock_mode: Optional[bool] = None,
    learning_file: Optional[str] = None,
) -> IntentBridge:
    """Build a bridge wired from environment configuration."""
    registry = build_default_registry()
    return IntentBridge(
        registry=registry,
        parser=IntentParser(delegate=create_default_delegate()),
        executor=APIExecutor(mock_mode=mock_mode),
        learning=LearningEngine(path=learning_file),
        api_learner=APILearner(registry),
    )
