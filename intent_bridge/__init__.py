"""
IntentBridge: natural-language intents to third-party API calls.

Parses a free-text request, resolves it to a registered API endpoint,
executes it (or answers from a mock), normalizes the provider response and
learns the resolution for next time.

Usage:
    from intent_bridge import create_bridge

    async with create_bridge(mock_mode=True) as bridge:
        response = await bridge.execute("get weather in Paris")
        print(response.message)
"""

from .api_learner import APILearner
from .bridge import IntentBridge, create_bridge
from .catalogue import build_default_registry
from .exceptions import (
    DelegateError,
    ExecutionError,
    IntentBridgeError,
    PersistenceError,
    RegistrationError,
)
from .executor import APIExecutor
from .learning import LearningEngine, canonical_key
from .models import (
    AuthSpec,
    AuthType,
    BridgeResponse,
    EndpointSpec,
    ExecutionResult,
    LearnedPattern,
    ParsedIntent,
    ParseResult,
    ParseStage,
    Provenance,
    ResolvedAPI,
    ServiceConfig,
    Stats,
)
from .normalizer import ResponseNormalizer
from .parser import IntentParser
from .registry import APIRegistry

__all__ = [
    "IntentBridge",
    "create_bridge",
    "APIRegistry",
    "build_default_registry",
    "IntentParser",
    "APIExecutor",
    "ResponseNormalizer",
    "LearningEngine",
    "canonical_key",
    "APILearner",
    "AuthSpec",
    "AuthType",
    "BridgeResponse",
    "EndpointSpec",
    "ExecutionResult",
    "LearnedPattern",
    "ParsedIntent",
    "ParseResult",
    "ParseStage",
    "Provenance",
    "ResolvedAPI",
    "ServiceConfig",
    "Stats",
    "IntentBridgeError",
    "DelegateError",
    "ExecutionError",
    "PersistenceError",
    "RegistrationError",
]
