"""
Tests for the API learner: request extraction and registration into the
shared registry.
"""

import pytest

from intent_bridge.api_learner import APILearner, extract_api_info, name_from_url
from intent_bridge.executor import APIExecutor
from intent_bridge.models import AuthType
from intent_bridge.registry import APIRegistry


@pytest.fixture
def registry():
    return APIRegistry()


@pytest.fixture
def learner(registry):
    return APILearner(registry)


class TestExtractApiInfo:

    @pytest.mark.parametrize("text,name,key,url", [
        ("integrate Stripe API with key sk_test_123", "Stripe", "sk_test_123", None),
        ("add the twilio api key: AC123", "twilio", "AC123", None),
        ("integrate razorpay api_key=rzp_1", "razorpay", "rzp_1", None),
        ("integrate https://api.acme.io/v1/items", None, None, "https://api.acme.io/v1/items"),
        ("please integrate", None, None, None),
    ])
    def test_extract(self, text, name, key, url):
        assert extract_api_info(text) == {"name": name, "api_key": key, "url": url}

    @pytest.mark.parametrize("url,expected", [
        ("https://api.acme.io/v1", "Acme"),
        ("https://www.example.com/docs", "Example"),
        ("not a url", "Unknown"),
    ])
    def test_name_from_url(self, url, expected):
        assert name_from_url(url) == expected


class TestLearn:

    def test_known_api_registered(self, learner, registry):
        response = learner.learn("integrate Stripe API with key sk_test_123")
        assert response.success is True
        assert response.message == "Successfully learned Stripe API!"
        assert response.endpoints == ["CREATE_payment"]
        assert "charge $50 using Stripe" in response.example

        resolved = registry.find_api("stripe", "CREATE", "payment")
        assert resolved is not None
        assert resolved.auth.type == AuthType.BEARER
        assert resolved.auth.credential == "sk_test_123"

    def test_known_api_without_key(self, learner, registry):
        response = learner.learn("add the sendgrid api")
        assert response.success is True
        assert registry.get("sendgrid").auth.credential is None

    def test_url_registers_generic_service(self, learner, registry):
        response = learner.learn("integrate https://api.acme.io/v1/items key abc")
        assert response.success is True
        config = registry.get("acme")
        assert config.base_url == "https://api.acme.io"
        assert config.endpoints["GET_data"].path == "/v1/items"
        assert config.auth.credential == "abc"

    def test_unknown_api(self, learner, registry):
        response = learner.learn("integrate FooBar API")
        assert response.success is False
        assert response.error == "Unknown API: FooBar"
        assert "stripe" in response.suggestion
        assert len(registry) == 0

    def test_nothing_named(self, learner):
        response = learner.learn("please integrate")
        assert response.success is False
        assert response.message == "Please specify which API to integrate"
        assert "integrate Stripe API" in response.example

    def test_relearn_replaces_credential(self, learner, registry):
        learner.learn("integrate stripe key old")
        learner.learn("integrate stripe key new")
        assert registry.list() == ["stripe"]
        assert registry.get("stripe").auth.credential == "new"


class TestLearnedMocks:

    @pytest.mark.asyncio
    async def test_email_without_subject_gets_default(self, learner, registry):
        learner.learn("integrate sendgrid api")
        resolved = registry.find_api("sendgrid", "SEND", "email")
        result = await APIExecutor(mock_mode=True).execute(resolved, {"to": "bob@example.com"})
        assert result.data == {
            "message_id": "mock-message-id",
            "to": "bob@example.com",
            "subject": "(no subject)",
        }

    @pytest.mark.asyncio
    async def test_email_subject_given(self, learner, registry):
        learner.learn("integrate sendgrid api")
        resolved = registry.find_api("sendgrid", "SEND", "email")
        result = await APIExecutor(mock_mode=True).execute(resolved, {"to": "bob@example.com", "subject": "Hi"})
        assert result.data["subject"] == "Hi"
