"""
API executor: issues the HTTP call for a resolved endpoint, or answers
from a deterministic mock.

A live call is attempted only when mock mode is off and the endpoint's
auth requirement can be met. Any failure while building or issuing the
request (missing parameters, transport errors, non-2xx status) degrades to
the mock path. The caller always receives an ExecutionResult and never an
exception.
"""

import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from .exceptions import ExecutionError
from .models import (
    READ_METHODS,
    AuthSpec,
    AuthType,
    ExecutionResult,
    Provenance,
    ResolvedAPI,
)

logger = logging.getLogger("intent-bridge.executor")

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _get_config() -> Dict[str, Any]:
    return {
        "mock_mode": os.getenv("INTENT_BRIDGE_MOCK_MODE", "false").lower() == "true",
        "timeout": float(os.getenv("INTENT_BRIDGE_HTTP_TIMEOUT", "10")),
    }


def credential_env_var(service_key: str) -> str:
    """Conventional env var for a service credential, e.g. INTENT_BRIDGE_STRIPE_API_KEY."""
    slug = re.sub(r"[^A-Za-z0-9]+", "_", service_key).strip("_").upper()
    return f"INTENT_BRIDGE_{slug}_API_KEY"


@dataclass
class PreparedRequest:
    method: str
    url: str
    params: Dict[str, Any] = field(default_factory=dict)
    json: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = field(default_factory=dict)


def map_parameters(parameters: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    """Rename surface parameter names to wire names. Unmapped names pass through."""
    return {mapping.get(name, name): value for name, value in parameters.items()}


def merge_defaults(params: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Add default params without overriding explicitly supplied values."""
    merged = dict(params)
    for name, value in defaults.items():
        merged.setdefault(name, value)
    return merged


def render_mock(template: Any, values: Dict[str, Any]) -> Any:
    """Fill ``{name}`` placeholders in string leaves of a sample payload."""
    if isinstance(template, str):
        return _PLACEHOLDER.sub(
            lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0),
            template,
        )
    if isinstance(template, dict):
        return {k: render_mock(v, values) for k, v in template.items()}
    if isinstance(template, list):
        return [render_mock(v, values) for v in template]
    return template


class APIExecutor:
    """Executes resolved API calls with a mock fallback."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        mock_mode: Optional[bool] = None,
        credentials: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize executor.

        Args:
            client: Optional httpx.AsyncClient to use
            mock_mode: Never call out when True (default: INTENT_BRIDGE_MOCK_MODE)
            credentials: Opaque secrets keyed by service key
            timeout: Request timeout in seconds for an owned client
        """
        cfg = _get_config()
        self.mock_mode = cfg["mock_mode"] if mock_mode is None else mock_mode
        self.timeout = cfg["timeout"] if timeout is None else timeout
        self.credentials: Dict[str, str] = dict(credentials or {})
        self._client = client
        self._owned_client = False

        if self.mock_mode:
            logger.info("Executor running in MOCK mode, no live API calls will be made")

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
            self._owned_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if owned."""
        if self._owned_client and self._client is not None:
            await self._client.aclose()
            self._client = None
            self._owned_client = False

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def resolve_credential(self, resolved: ResolvedAPI) -> Optional[str]:
        auth = resolved.effective_auth
        if auth is not None and auth.credential:
            return auth.credential
        if resolved.key in self.credentials:
            return self.credentials[resolved.key]
        if auth is not None and auth.env and os.getenv(auth.env):
            return os.getenv(auth.env)
        return os.getenv(credential_env_var(resolved.key)) or None

    def can_authenticate(self, resolved: ResolvedAPI) -> bool:
        auth = resolved.effective_auth
        if auth is None or auth.type == AuthType.NONE or not auth.required:
            return True
        return self.resolve_credential(resolved) is not None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, resolved: ResolvedAPI, parameters: Dict[str, Any]) -> ExecutionResult:
        """Execute the selected endpoint, degrading to a mock on any failure."""
        logger.info(f"Executing {resolved.name} {resolved.endpoint_key}")

        if self.mock_mode:
            return self.mock_execute(resolved, parameters, reason="mock mode enabled")

        if not self.can_authenticate(resolved):
            return self.mock_execute(resolved, parameters, reason=f"no credential for '{resolved.key}'")

        start = time.perf_counter()
        try:
            request = self.build_request(resolved, parameters, self.resolve_credential(resolved))
            logger.info(f"Making request: {request.method} {request.url}")
            response = await self.client.request(
                request.method,
                request.url,
                params=request.params or None,
                json=request.json,
                headers=request.headers,
            )
            if not response.is_success:
                raise ExecutionError(f"HTTP {response.status_code} from {resolved.name}")
            data = self._parse_body(response)
        except Exception as e:
            logger.warning(f"API error for {resolved.name}, falling back to mock: {e}")
            return self.mock_execute(resolved, parameters, reason=str(e))

        return ExecutionResult(
            success=True,
            data=data,
            service=resolved.name,
            provenance=Provenance.LIVE,
            status_code=response.status_code,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    def build_request(
        self,
        resolved: ResolvedAPI,
        parameters: Dict[str, Any],
        credential: Optional[str] = None,
    ) -> PreparedRequest:
        """Map, default, substitute and authenticate one request.

        Raises ExecutionError when a required or path parameter is missing.
        """
        endpoint = resolved.selected_endpoint
        wire = merge_defaults(map_parameters(parameters, endpoint.param_mapping), endpoint.default_params)

        missing = [name for name in endpoint.required if wire.get(name) in (None, "")]
        if missing:
            raise ExecutionError(f"Missing required parameter(s): {', '.join(missing)}")

        path = self._substitute_path(endpoint.path, wire, parameters)

        headers = {
            "Accept": "application/json",
            "User-Agent": "intent-bridge/1.0",
        }
        headers.update(endpoint.headers)

        auth = resolved.effective_auth
        if auth is not None and credential:
            self._apply_auth(auth, credential, headers, wire)

        method = endpoint.method.upper()
        request = PreparedRequest(method=method, url=f"{resolved.base_url}{path}", headers=headers)
        if method in READ_METHODS:
            request.params = wire
        else:
            request.json = wire
        return request

    def _substitute_path(self, template: str, wire: Dict[str, Any], surface: Dict[str, Any]) -> str:
        """Fill path placeholders; consumed names leave the wire params."""

        def replace(match: re.Match) -> str:
            name = match.group(1)
            if name in wire:
                value = wire.pop(name)
            elif name in surface:
                value = surface[name]
            else:
                raise ExecutionError(f"Missing path parameter '{name}'")
            return quote(str(value), safe="")

        return _PLACEHOLDER.sub(replace, template)

    @staticmethod
    def _apply_auth(auth: AuthSpec, credential: str, headers: Dict[str, str], wire: Dict[str, Any]) -> None:
        header = auth.header or "Authorization"
        if auth.type in (AuthType.BEARER, AuthType.OAUTH2):
            headers[header] = f"Bearer {credential}"
        elif auth.type == AuthType.TOKEN:
            headers[header] = f"token {credential}"
        elif auth.type == AuthType.BASIC:
            headers[header] = f"Basic {credential}"
        elif auth.type == AuthType.APIKEY:
            if auth.query_param:
                wire[auth.query_param] = credential
            else:
                headers[auth.header or "X-API-Key"] = credential

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # Return raw text if not JSON
            return {"raw": response.text}

    def mock_execute(
        self,
        resolved: ResolvedAPI,
        parameters: Dict[str, Any],
        reason: Optional[str] = None,
    ) -> ExecutionResult:
        """Deterministic placeholder response for an endpoint."""
        logger.info(f"Using mock response for {resolved.name} ({reason or 'no reason given'})")
        endpoint = resolved.selected_endpoint
        try:
            if endpoint.mock_response is not None:
                wire = merge_defaults(map_parameters(parameters, endpoint.param_mapping), endpoint.default_params)
                data = render_mock(endpoint.mock_response, {**wire, **parameters})
            else:
                data = {
                    "success": True,
                    "message": f"Mock {resolved.name} response",
                    "parameters": dict(parameters),
                }
        except Exception as e:
            logger.error(f"Mock response for {resolved.name} could not be built: {e}")
            return ExecutionResult(
                success=False,
                error=f"Mock response unavailable: {e}",
                service=resolved.name,
                provenance=Provenance.MOCK,
                fallback_reason=reason,
            )

        return ExecutionResult(
            success=True,
            data=data,
            service=resolved.name,
            provenance=Provenance.MOCK,
            fallback_reason=reason,
        )
