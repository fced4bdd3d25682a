"""
API learner: registers new services from "integrate X API" requests.

Recognised names resolve against a small built-in catalogue of well-known
providers. A request that carries a URL instead registers a generic
service rooted at that URL's host. Either way the service is written into
the registry shared with the orchestrator, so it is callable on the very
next request. No documentation is fetched.
"""

import logging
import re
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

from .exceptions import RegistrationError
from .models import AuthSpec, AuthType, BridgeResponse, EndpointSpec, ServiceConfig
from .registry import APIRegistry

logger = logging.getLogger("intent-bridge.api-learner")

_NAME_RE = re.compile(
    r"\b(?:integrate|add)\s+(?:the\s+|an?\s+)?(?!(?:api[_\s]?)?key\b)([A-Za-z][\w-]*)", re.IGNORECASE
)
_KEY_RE = re.compile(r"\bapi[_\s]?key[:=\s]+(\S+)|\bkey[:=\s]+(\S+)", re.IGNORECASE)
_URL_RE = re.compile(r"https?://[^\s]+")

USAGE_EXAMPLE = 'Try: "integrate Stripe API with key sk_test_..."'


def _payment_endpoint(path: str, default_currency: str, sample: Dict[str, Any]) -> EndpointSpec:
    return EndpointSpec(
        method="POST",
        path=path,
        param_mapping={"amount": "amount", "currency": "currency", "description": "description"},
        required=["amount"],
        default_params={"currency": default_currency},
        mock_response=sample,
        description="Create a payment",
    )


def _stripe() -> Dict[str, Any]:
    return {
        "name": "Stripe",
        "base_url": "https://api.stripe.com",
        "auth": AuthType.BEARER,
        "endpoints": {
            "CREATE_payment": _payment_endpoint(
                "/v1/charges", "usd",
                {"id": "ch_mock_intentbridge", "amount": "{amount}", "currency": "{currency}", "status": "succeeded"},
            ),
        },
    }


def _razorpay() -> Dict[str, Any]:
    return {
        "name": "Razorpay",
        "base_url": "https://api.razorpay.com",
        "auth": AuthType.BASIC,
        "endpoints": {
            "CREATE_payment": _payment_endpoint(
                "/v1/orders", "INR",
                {"id": "order_mock_intentbridge", "amount": "{amount}", "currency": "{currency}", "status": "created"},
            ),
        },
    }


def _easypaisa() -> Dict[str, Any]:
    return {
        "name": "EasyPaisa",
        "base_url": "https://api.easypaisa.com.pk",
        "auth": AuthType.APIKEY,
        "endpoints": {
            "CREATE_payment": _payment_endpoint(
                "/v1/payments", "PKR",
                {"transactionId": "EP-MOCK-0001", "amount": "{amount}", "status": "initiated"},
            ),
        },
    }


def _jazzcash() -> Dict[str, Any]:
    return {
        "name": "JazzCash",
        "base_url": "https://api.jazzcash.com.pk",
        "auth": AuthType.APIKEY,
        "endpoints": {
            "CREATE_payment": _payment_endpoint(
                "/v1/payments", "PKR",
                {
                    "pp_TxnRefNo": "JC-MOCK-0001",
                    "pp_Amount": "{amount}",
                    "pp_ResponseCode": "000",
                    "pp_ResponseMessage": "Mock transaction accepted",
                },
            ),
        },
    }


def _twilio() -> Dict[str, Any]:
    return {
        "name": "Twilio",
        "base_url": "https://api.twilio.com",
        "auth": AuthType.BASIC,
        "endpoints": {
            "SEND_message": EndpointSpec(
                method="POST",
                path="/2010-04-01/Messages.json",
                param_mapping={"body": "Body", "to": "To", "from": "From"},
                required=["Body", "To"],
                mock_response={"sid": "SM_mock_intentbridge", "to": "{to}", "body": "{body}", "status": "queued"},
                description="Send an SMS",
            ),
        },
    }


def _sendgrid() -> Dict[str, Any]:
    return {
        "name": "SendGrid",
        "base_url": "https://api.sendgrid.com",
        "auth": AuthType.BEARER,
        "endpoints": {
            "SEND_email": EndpointSpec(
                method="POST",
                path="/v3/mail/send",
                param_mapping={"to": "to", "subject": "subject", "body": "content"},
                required=["to"],
                default_params={"subject": "(no subject)"},
                mock_response={"message_id": "mock-message-id", "to": "{to}", "subject": "{subject}"},
                description="Send an email",
            ),
        },
    }


def _openai() -> Dict[str, Any]:
    return {
        "name": "OpenAI",
        "base_url": "https://api.openai.com",
        "auth": AuthType.BEARER,
        "endpoints": {
            "CREATE_completion": EndpointSpec(
                method="POST",
                path="/v1/chat/completions",
                param_mapping={"prompt": "prompt", "model": "model"},
                required=["prompt"],
                default_params={"model": "gpt-3.5-turbo"},
                description="Create a chat completion",
            ),
        },
    }


KNOWN_APIS: Dict[str, Callable[[], Dict[str, Any]]] = {
    "stripe": _stripe,
    "razorpay": _razorpay,
    "easypaisa": _easypaisa,
    "jazzcash": _jazzcash,
    "twilio": _twilio,
    "sendgrid": _sendgrid,
    "openai": _openai,
}

# Sample command per endpoint key, shown after a successful integration
_USAGE_HINTS = {
    "CREATE_payment": "charge $50 using {name}",
    "SEND_message": "send sms 'hello' to +15551234567",
    "SEND_email": "send email to someone@example.com saying hello",
}


def extract_api_info(text: str) -> Dict[str, Optional[str]]:
    """Pull the API name, key and URL out of an integration request."""
    url_match = _URL_RE.search(text)
    url = url_match.group(0).rstrip(".,;") if url_match else None

    # Drop the URL first so its scheme is not read as the name
    name_match = _NAME_RE.search(_URL_RE.sub(" ", text))
    key_match = _KEY_RE.search(text)

    return {
        "name": name_match.group(1) if name_match else None,
        "api_key": (key_match.group(1) or key_match.group(2)) if key_match else None,
        "url": url,
    }


def name_from_url(url: str) -> str:
    host = urlparse(url).hostname or ""
    labels = [p for p in host.split(".") if p and p not in ("www", "api")]
    return labels[0].capitalize() if labels else "Unknown"


class APILearner:
    """Turns integration requests into registered services."""

    def __init__(self, registry: APIRegistry):
        self.registry = registry

    def identify(self, info: Dict[str, Optional[str]]) -> Optional[Dict[str, Any]]:
        """Resolve request info to a service template, or None."""
        search = " ".join(filter(None, [info.get("name"), info.get("url")])).lower()
        for key, factory in KNOWN_APIS.items():
            if key in search:
                return {"key": key, **factory()}

        url = info.get("url")
        if url:
            parsed = urlparse(url)
            name = name_from_url(url)
            return {
                "key": name.lower(),
                "name": name,
                "base_url": f"{parsed.scheme}://{parsed.netloc}",
                "auth": AuthType.APIKEY,
                "endpoints": {
                    "GET_data": EndpointSpec(method="GET", path=parsed.path or "/", description="Fetch data"),
                },
            }
        return None

    def learn(self, text: str) -> BridgeResponse:
        """Register the API named (or linked) in ``text``. Never raises."""
        info = extract_api_info(text)
        logger.info(f"Integration request: name={info['name']} url={info['url']}")

        if not info["name"] and not info["url"]:
            return BridgeResponse(
                success=False,
                message="Please specify which API to integrate",
                example=USAGE_EXAMPLE,
            )

        template = self.identify(info)
        if template is None:
            return BridgeResponse(
                success=False,
                error=f"Unknown API: {info['name']}",
                suggestion="Provide a documentation or base URL, or use one of: "
                + ", ".join(KNOWN_APIS),
                example=USAGE_EXAMPLE,
            )

        try:
            config = self._register(template, info.get("api_key"))
        except RegistrationError as e:
            logger.error(f"Could not register {template['name']}: {e}")
            return BridgeResponse(success=False, error=str(e), example=USAGE_EXAMPLE)

        endpoints = list(config.endpoints)
        hint = next((_USAGE_HINTS[k] for k in endpoints if k in _USAGE_HINTS), None)
        return BridgeResponse(
            success=True,
            message=f"Successfully learned {config.name} API!",
            service=config.key,
            endpoints=endpoints,
            example=f'Now you can use commands like: "{hint.format(name=config.name)}"' if hint else None,
        )

    def _register(self, template: Dict[str, Any], api_key: Optional[str]) -> ServiceConfig:
        key = template["key"]
        auth = AuthSpec(type=template["auth"], required=True, credential=api_key)
        try:
            config = ServiceConfig(
                key=key,
                name=template["name"],
                base_url=template["base_url"],
                endpoints=template["endpoints"],
                auth=auth,
            )
        except ValueError as e:
            raise RegistrationError(f"Invalid service definition for '{key}': {e}") from e

        self.registry.register(key, config)
        logger.info(f"Stored configuration for {config.name} ({len(config.endpoints)} endpoints)")
        return config
