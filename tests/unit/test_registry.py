"""
Tests for the API registry and the static catalogue.

Covers registration (typed and record-based), lookup by
(service, action, resource), and malformed registration records.
"""

import pytest

from intent_bridge.catalogue import build_default_registry
from intent_bridge.exceptions import RegistrationError
from intent_bridge.models import AuthType, EndpointSpec, ServiceConfig
from intent_bridge.registry import APIRegistry, build_service_config


@pytest.fixture
def registry():
    return APIRegistry()


def _service(key: str = "weather", name: str = "OpenWeatherMap") -> ServiceConfig:
    return ServiceConfig(
        key=key,
        name=name,
        base_url="https://api.example.com",
        endpoints={
            "GET_forecast": EndpointSpec(path="/forecast", param_mapping={"location": "q"}),
        },
    )


class TestRegistration:
    """Test register / list / get."""

    def test_register_and_get(self, registry):
        registry.register("weather", _service())
        assert registry.get("weather").name == "OpenWeatherMap"
        assert "weather" in registry
        assert len(registry) == 1

    def test_list_in_registration_order(self, registry):
        for key in ("news", "weather", "joke"):
            registry.register(key, _service(key=key))
        assert registry.list() == ["news", "weather", "joke"]

    def test_reregister_overwrites_and_keeps_position(self, registry):
        registry.register("weather", _service())
        registry.register("joke", _service(key="joke"))
        registry.register("weather", _service(name="Weather v2"))
        assert registry.list() == ["weather", "joke"]
        assert registry.get("weather").name == "Weather v2"

    def test_register_rekeys_config(self, registry):
        registry.register("forecast", _service(key="weather"))
        assert registry.get("forecast").key == "forecast"

    def test_get_missing(self, registry):
        assert registry.get("nope") is None


class TestFindApi:
    """Test endpoint resolution."""

    def test_exact_match(self, registry):
        registry.register("weather", _service())
        resolved = registry.find_api("weather", "GET", "forecast")
        assert resolved is not None
        assert resolved.endpoint_key == "GET_forecast"
        assert resolved.selected_endpoint.path == "/forecast"
        assert resolved.name == "OpenWeatherMap"

    @pytest.mark.parametrize("service,action,resource", [
        ("unknown", "GET", "forecast"),
        ("weather", "POST", "forecast"),
        ("weather", "GET", "headlines"),
        ("Weather", "GET", "forecast"),
        ("weather", "get", "forecast"),
    ])
    def test_miss_returns_none(self, registry, service, action, resource):
        registry.register("weather", _service())
        assert registry.find_api(service, action, resource) is None

    def test_lookup_has_no_side_effects(self, registry):
        registry.register("weather", _service())
        registry.find_api("weather", "GET", "forecast")
        registry.find_api("missing", "GET", "x")
        assert registry.list() == ["weather"]


class TestRegisterFromDict:
    """Test record-based registration."""

    def test_camel_case_record(self, registry):
        config = registry.register_from_dict("stripe", {
            "name": "Stripe",
            "baseUrl": "https://api.stripe.com/",
            "auth": {"type": "bearer", "required": True, "credential": "sk_test_123"},
            "endpoints": {
                "CREATE_payment": {
                    "method": "post",
                    "path": "/v1/charges",
                    "paramMapping": {"amount": "amount"},
                    "defaultParams": {"currency": "usd"},
                    "required": ["amount"],
                    "mockResponse": {"id": "ch_1"},
                },
            },
        })
        endpoint = config.endpoints["CREATE_payment"]
        assert config.base_url == "https://api.stripe.com"
        assert endpoint.method == "POST"
        assert endpoint.default_params == {"currency": "usd"}
        assert endpoint.mock_response == {"id": "ch_1"}
        assert config.auth.type == AuthType.BEARER
        assert registry.find_api("stripe", "CREATE", "payment") is not None

    def test_snake_case_record(self):
        config = build_service_config("x", {
            "name": "X",
            "base_url": "https://x.example.com",
            "endpoints": {"GET_data": {"path": "/data", "auth": {"type": "apikey", "queryParam": "key"}}},
        })
        assert config.endpoints["GET_data"].auth.query_param == "key"

    @pytest.mark.parametrize("record", [
        {"baseUrl": "https://x.example.com"},
        {"name": "X"},
        {"name": "X", "baseUrl": "https://x.example.com", "endpoints": ["GET_data"]},
        {"name": "X", "baseUrl": "https://x.example.com", "endpoints": {"GET_data": "nope"}},
        {"name": "X", "baseUrl": "https://x.example.com", "endpoints": {"GET_data": {"required": "q"}}},
        {"name": "X", "baseUrl": "https://x.example.com", "auth": "bearer"},
    ])
    def test_malformed_records(self, registry, record):
        with pytest.raises(RegistrationError):
            registry.register_from_dict("x", record)
        assert "x" not in registry


class TestCatalogue:
    """Test the default catalogue registry."""

    def test_catalogue_services(self):
        registry = build_default_registry()
        assert registry.list() == [
            "weather", "news", "currency", "joke", "github", "facts", "dictionary", "ip",
        ]

    @pytest.mark.parametrize("service,action,resource", [
        ("weather", "GET", "weather"),
        ("weather", "GET", "forecast"),
        ("news", "GET", "headlines"),
        ("news", "SEARCH", "news"),
        ("currency", "GET", "rate"),
        ("joke", "GET", "joke"),
        ("github", "GET", "user"),
        ("github", "GET", "repos"),
        ("github", "CREATE", "repository"),
        ("facts", "GET", "fact"),
        ("dictionary", "GET", "definition"),
        ("ip", "GET", "location"),
    ])
    def test_catalogue_endpoints_resolve(self, service, action, resource):
        assert build_default_registry().find_api(service, action, resource) is not None

    def test_endpoint_auth_overrides_service_auth(self):
        resolved = build_default_registry().find_api("github", "CREATE", "repository")
        assert resolved.effective_auth.required is True
        assert resolved.auth.required is False
