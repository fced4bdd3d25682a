#!/usr/bin/env python3
"""
IntentBridge MCP Server.

Exposes the bridge to MCP clients as three tools:
  - execute_intent(intent="...")  run a natural-language API request
  - list_apis()                   registered service keys
  - get_stats()                   learning statistics

Port: 8891 (configurable via INTENT_BRIDGE_MCP_PORT)
Transport: SSE
"""

import json
import logging
import os
import sys
from typing import Optional

from fastmcp import FastMCP

from .bridge import IntentBridge, create_bridge

logger = logging.getLogger("intent-bridge.mcp")

# Configuration
MCP_ENABLED = os.getenv("INTENT_BRIDGE_MCP_ENABLED", "false").lower() == "true"
MCP_PORT = int(os.getenv("INTENT_BRIDGE_MCP_PORT", "8891"))
MCP_HOST = os.getenv("INTENT_BRIDGE_MCP_HOST", "0.0.0.0")

mcp = FastMCP(name="intent-bridge")

_bridge: Optional[IntentBridge] = None


def _get_bridge() -> IntentBridge:
    """Lazy-initialize the shared bridge."""
    global _bridge
    if _bridge is None:
        _bridge = create_bridge()
    return _bridge


def set_bridge(bridge: Optional[IntentBridge]) -> None:
    """Replace the shared bridge (None resets to lazy creation)."""
    global _bridge
    _bridge = bridge


async def execute_intent(intent: str) -> str:
    """
    Execute an API request described in plain English.

    Args:
        intent: What you want to do.

    Examples:
        - "get weather in Paris"
        - "tell me a joke"
        - "show repos of octocat"
        - "integrate Stripe API with key sk_test_..."
        - "charge $50 using stripe"

    Returns:
        JSON envelope with success, message, normalized data and, when the
        request could not be resolved, suggestions and available APIs.
    """
    logger.info(f"Tool called: execute_intent(intent='{intent[:80]}')")
    response = await _get_bridge().execute(intent)
    return json.dumps(response.to_dict(), indent=2, ensure_ascii=False, default=str)


async def list_apis() -> str:
    """List the service keys currently registered with the bridge."""
    return json.dumps(_get_bridge().list_apis())


async def get_stats() -> str:
    """Execution statistics and the most used learned patterns."""
    return json.dumps(_get_bridge().get_stats(), indent=2)


for _tool in (execute_intent, list_apis, get_stats):
    mcp.tool()(_tool)


def main():
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not MCP_ENABLED:
        logger.warning("IntentBridge MCP Server is DISABLED")
        logger.warning("To enable: export INTENT_BRIDGE_MCP_ENABLED=true")
        sys.exit(0)

    logger.info("Starting IntentBridge MCP Server")
    logger.info(f"Host: {MCP_HOST}")
    logger.info(f"Port: {MCP_PORT}")
    logger.info(f"APIs: {', '.join(_get_bridge().list_apis())}")

    mcp.run(transport="sse", host=MCP_HOST, port=MCP_PORT)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
