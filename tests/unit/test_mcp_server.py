"""
Tests for the MCP tool functions.

The tools are called as plain coroutines against a mock-mode bridge; no
MCP transport is started.
"""

import json

import pytest

from intent_bridge import mcp_server
from intent_bridge.catalogue import build_default_registry
from intent_bridge.bridge import IntentBridge
from intent_bridge.executor import APIExecutor
from intent_bridge.learning import LearningEngine
from intent_bridge.parser import IntentParser


@pytest.fixture(autouse=True)
def bridge(tmp_path):
    bridge = IntentBridge(
        registry=build_default_registry(),
        parser=IntentParser(),
        executor=APIExecutor(mock_mode=True),
        learning=LearningEngine(path=str(tmp_path / "learning.json")),
    )
    mcp_server.set_bridge(bridge)
    yield bridge
    mcp_server.set_bridge(None)


class TestTools:

    @pytest.mark.asyncio
    async def test_execute_intent_returns_json(self):
        payload = json.loads(await mcp_server.execute_intent("get weather in Paris"))
        assert payload["success"] is True
        assert payload["data"]["type"] == "weather"
        assert "Paris" in payload["message"]

    @pytest.mark.asyncio
    async def test_execute_intent_not_found(self):
        payload = json.loads(await mcp_server.execute_intent("do something nobody registered"))
        assert payload["success"] is False
        assert "weather" in payload["available_apis"]

    @pytest.mark.asyncio
    async def test_list_apis(self):
        assert json.loads(await mcp_server.list_apis())[0] == "weather"

    @pytest.mark.asyncio
    async def test_get_stats_after_execution(self):
        await mcp_server.execute_intent("tell me a joke")
        stats = json.loads(await mcp_server.get_stats())
        assert stats["total_executions"] == 1
        assert stats["success_rate"] == "100.0%"


class TestConfig:

    def test_defaults(self):
        assert isinstance(mcp_server.MCP_PORT, int)
        assert mcp_server.mcp.name == "intent-bridge"

    def test_main_exits_when_disabled(self, monkeypatch):
        monkeypatch.setattr(mcp_server, "MCP_ENABLED", False)
        with pytest.raises(SystemExit) as exc:
            mcp_server.main()
        assert exc.value.code == 0
