"""
API registry: the catalogue of services the bridge can call.

A registry is an explicit handle. The orchestrator and the API learner
share the same instance, so a service learned at runtime is visible to the
very next lookup.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .exceptions import RegistrationError
from .models import AuthSpec, EndpointSpec, ResolvedAPI, ServiceConfig

logger = logging.getLogger("intent-bridge.registry")

# camelCase registration keys accepted alongside the snake_case field names
_ENDPOINT_ALIASES = {
    "paramMapping": "param_mapping",
    "defaultParams": "default_params",
    "mockResponse": "mock_response",
}

_AUTH_ALIASES = {
    "queryParam": "query_param",
}


class APIRegistry:
    """Registered services keyed by service key, in registration order."""

    def __init__(self) -> None:
        self._services: Dict[str, ServiceConfig] = {}

    def register(self, key: str, config: ServiceConfig) -> None:
        """Store or overwrite a service. Re-registering keeps its position."""
        if config.key != key:
            config = config.model_copy(update={"key": key})
        self._services[key] = config
        logger.debug(f"Registered service '{key}' with {len(config.endpoints)} endpoint(s)")

    def register_from_dict(self, key: str, record: Dict[str, Any]) -> ServiceConfig:
        """Register a service from a plain registration record.

        Accepts ``name``, ``baseUrl`` (or ``base_url``), ``endpoints`` and an
        optional service-wide ``auth``. Raises RegistrationError when the
        record is malformed.
        """
        config = build_service_config(key, record)
        self.register(key, config)
        return config

    def get(self, key: str) -> Optional[ServiceConfig]:
        return self._services.get(key)

    def list(self) -> List[str]:
        """All registered service keys in registration order."""
        return list(self._services)

    def find_api(self, service: str, action: str, resource: str) -> Optional[ResolvedAPI]:
        """
        Resolve a (service, action, resource) triple to an endpoint.

        Both lookups are exact and case-sensitive. Returns None when either
        the service or the ``{action}_{resource}`` endpoint is missing.
        """
        config = self._services.get(service)
        if config is None:
            return None

        endpoint_key = f"{action}_{resource}"
        endpoint = config.endpoints.get(endpoint_key)
        if endpoint is None:
            return None

        return ResolvedAPI(
            **config.model_dump(exclude={"endpoints", "auth"}),
            endpoints=dict(config.endpoints),
            auth=config.auth,
            endpoint_key=endpoint_key,
            selected_endpoint=endpoint,
        )

    def __contains__(self, key: str) -> bool:
        return key in self._services

    def __len__(self) -> int:
        return len(self._services)


def _rename(data: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    return {aliases.get(k, k): v for k, v in data.items()}


def _build_auth(raw: Any) -> Optional[AuthSpec]:
    if raw is None:
        return None
    if isinstance(raw, AuthSpec):
        return raw
    if not isinstance(raw, dict):
        raise RegistrationError(f"auth must be a mapping, got {type(raw).__name__}")
    return AuthSpec(**_rename(raw, _AUTH_ALIASES))


def build_service_config(key: str, record: Dict[str, Any]) -> ServiceConfig:
    """Validate a registration record into a ServiceConfig."""
    name = record.get("name")
    base_url = record.get("baseUrl", record.get("base_url"))
    if not name or not base_url:
        raise RegistrationError(f"Service '{key}' needs both 'name' and 'baseUrl'")

    raw_endpoints = record.get("endpoints") or {}
    if not isinstance(raw_endpoints, dict):
        raise RegistrationError(f"Service '{key}' endpoints must be a mapping")

    try:
        endpoints = {}
        for endpoint_key, raw in raw_endpoints.items():
            if isinstance(raw, EndpointSpec):
                endpoints[endpoint_key] = raw
                continue
            data = _rename(raw, _ENDPOINT_ALIASES)
            data["method"] = str(data.get("method", "GET")).upper()
            data["auth"] = _build_auth(data.get("auth"))
            endpoints[endpoint_key] = EndpointSpec(**data)

        return ServiceConfig(
            key=key,
            name=name,
            base_url=base_url.rstrip("/"),
            endpoints=endpoints,
            auth=_build_auth(record.get("auth")),
        )
    except (ValidationError, TypeError, AttributeError) as e:
        raise RegistrationError(f"Invalid registration for '{key}': {e}") from e
