"""
End-to-end tests for the IntentBridge orchestrator.

The executor runs in mock mode (or against httpx.MockTransport) and the
learning store lives in tmp_path, so nothing leaves the process.
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from intent_bridge.bridge import IntentBridge, create_bridge, is_integration_request, readable_message
from intent_bridge.catalogue import build_default_registry
from intent_bridge.executor import APIExecutor
from intent_bridge.learning import LearningEngine
from intent_bridge.models import ExecutionResult, ParsedIntent, ParseStage, Provenance
from intent_bridge.parser import IntentParser


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("OPENAI_API_KEY", "INTENT_BRIDGE_LLM_API_KEY", "OPENWEATHER_API_KEY", "INTENT_BRIDGE_MOCK_MODE"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def learning(tmp_path):
    return LearningEngine(path=str(tmp_path / "learning.json"))


@pytest.fixture
def bridge(learning):
    return IntentBridge(
        registry=build_default_registry(),
        parser=IntentParser(),
        executor=APIExecutor(mock_mode=True),
        learning=learning,
    )


class TestHelpers:

    @pytest.mark.parametrize("text,expected", [
        ("integrate Stripe API", True),
        ("please INTEGRATE twilio", True),
        ("add the sendgrid api", True),
        ("add milk to the list", False),
        ("what api do you support", False),
        ("get weather in Paris", False),
    ])
    def test_is_integration_request(self, text, expected):
        assert is_integration_request(text) is expected

    @pytest.mark.parametrize("normalized,expected", [
        ({"type": "weather", "location": "Oslo", "summary": "3°C and snow in Oslo"},
         "Weather in Oslo: 3°C and snow in Oslo"),
        ({"type": "payment", "platform": "Stripe", "summary": "Payment ch_1 - succeeded"},
         "Payment via Stripe: Payment ch_1 - succeeded"),
        ({"type": "entertainment", "content": "a joke"}, "a joke"),
        ({"type": "news", "summary": "Found 3 news articles"}, "Found 3 news articles"),
        ({"type": "api_response", "summary": "x"}, "Operation completed successfully"),
    ])
    def test_readable_message(self, normalized, expected):
        assert readable_message(normalized) == expected


class TestExecute:

    @pytest.mark.asyncio
    async def test_weather_end_to_end(self, bridge):
        response = await bridge.execute("get weather in Paris")
        assert response.success is True
        assert response.data["type"] == "weather"
        assert "Paris" in response.data["summary"]
        assert response.message.startswith("Weather in Paris")
        assert response.mock is True
        assert response.service == "OpenWeatherMap"
        assert response.parse_stage == ParseStage.RULES
        assert response.fast_path is False
        assert response.raw["name"] == "Paris"
        assert response.execution_time_ms >= 0

    @pytest.mark.asyncio
    async def test_unresolvable_intent(self, bridge, learning):
        response = await bridge.execute("do something nobody registered")
        assert response.success is False
        assert response.error == "API not found: unknown"
        assert response.available_apis == bridge.list_apis()
        assert response.suggestion.startswith("Try one of: weather, news")
        assert response.parse_stage == ParseStage.FALLBACK
        assert learning.stats.total_executions == 0

    @pytest.mark.asyncio
    async def test_second_run_uses_fast_path(self, bridge):
        await bridge.execute("get weather in Paris")
        spy = AsyncMock(side_effect=bridge.parser.parse_with_stage)
        bridge.parser.parse_with_stage = spy

        response = await bridge.execute("  Get weather in   paris")
        assert response.success is True
        assert response.fast_path is True
        assert response.parse_stage is None
        spy.assert_not_awaited()
        assert bridge.get_stats()["top_patterns"][0]["count"] == 2

    @pytest.mark.asyncio
    async def test_stale_pattern_falls_back_to_parser(self, bridge, learning):
        ghost = ParsedIntent(action="GET", service="ghost", resource="forecast")
        resolved = bridge.registry.find_api("weather", "GET", "forecast")
        ok = ExecutionResult(success=True, service="Ghost", provenance=Provenance.MOCK, data={})
        learning.record_execution("get weather in Paris", ghost, resolved, ok, 1.0)

        response = await bridge.execute("get weather in Paris")
        assert response.success is True
        assert response.fast_path is False
        assert response.data["type"] == "weather"

    @pytest.mark.asyncio
    async def test_integrate_then_use(self, bridge):
        learned = await bridge.execute("integrate Stripe API with key sk_test_123")
        assert learned.success is True
        assert "stripe" in bridge.list_apis()

        response = await bridge.execute("charge $50 using stripe")
        assert response.success is True
        assert response.data["type"] == "payment"
        assert response.data["amount"] == "$50.00"
        assert response.service == "Stripe"

    @pytest.mark.asyncio
    async def test_integration_without_name(self, bridge):
        response = await bridge.execute("integrate")
        assert response.success is False
        assert response.example is not None

    @pytest.mark.asyncio
    async def test_execution_failure_recorded(self, learning):
        executor = MagicMock()
        executor.execute = AsyncMock(return_value=ExecutionResult(
            success=False, service="OpenWeatherMap", provenance=Provenance.MOCK, error="no mock",
        ))
        bridge = IntentBridge(registry=build_default_registry(), executor=executor, learning=learning)

        response = await bridge.execute("get weather in Paris")
        assert response.success is False
        assert response.error == "no mock"
        assert learning.stats.failed_executions == 1
        assert learning.check_pattern("get weather in Paris") is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_structured(self, learning):
        executor = MagicMock()
        executor.execute = AsyncMock(side_effect=RuntimeError("kaboom"))
        bridge = IntentBridge(registry=build_default_registry(), executor=executor, learning=learning)

        response = await bridge.execute("get weather in Paris")
        assert response.success is False
        assert "kaboom" in response.error

    @pytest.mark.asyncio
    async def test_live_weather(self, learning):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={
                "name": request.url.params["q"],
                "main": {"temp": 14.2, "humidity": 80},
                "weather": [{"description": "light rain"}],
            })

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        bridge = IntentBridge(
            registry=build_default_registry(),
            executor=APIExecutor(client=client, mock_mode=False, credentials={"weather": "k"}),
            learning=learning,
        )
        response = await bridge.execute("what is the weather in Lisbon")
        assert response.mock is False
        assert response.data["summary"] == "14°C and light rain in Lisbon"
        await client.aclose()


class TestSurface:

    def test_list_apis(self, bridge):
        assert bridge.list_apis()[:3] == ["weather", "news", "currency"]

    def test_stats_start_empty(self, bridge):
        assert bridge.get_stats()["success_rate"] == "N/A"

    @pytest.mark.asyncio
    async def test_to_dict_drops_unset_fields(self, bridge):
        payload = (await bridge.execute("tell me a joke")).to_dict()
        assert payload["success"] is True
        assert payload["parse_stage"] == "rules"
        assert "error" not in payload
        assert "available_apis" not in payload

    @pytest.mark.asyncio
    async def test_async_context_manager_closes_executor(self, learning):
        executor = MagicMock()
        executor.aclose = AsyncMock()
        async with IntentBridge(registry=build_default_registry(), executor=executor, learning=learning):
            pass
        executor.aclose.assert_awaited_once()

    def test_create_bridge(self, tmp_path):
        bridge = create_bridge(mock_mode=True, learning_file=str(tmp_path / "l.json"))
        assert bridge.executor.mock_mode is True
        assert bridge.parser.delegate is None
        assert bridge.api_learner.registry is bridge.registry
        assert bridge.learning.path == str(tmp_path / "l.json")
