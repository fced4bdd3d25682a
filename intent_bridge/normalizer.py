"""
Response normalizer: maps each provider's raw payload to one envelope shape.

Converters are plain functions held in a name -> function table. Lookup is
case-insensitive and accepts both service keys ("weather") and provider
display names ("OpenWeatherMap"). Every result is wrapped as

    {type, platform, ...fields..., summary, timestamp, service}

A converter that raises is replaced by the default converter for that call.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger("intent-bridge.normalizer")

Converter = Callable[[Any], Dict[str, Any]]


def _round_temp(value: Any) -> int:
    return int(round(float(value or 0)))


def normalize_weather(data: Dict[str, Any]) -> Dict[str, Any]:
    main = data.get("main") or {}
    conditions = data.get("weather") or [{}]
    temp = _round_temp(main.get("temp"))
    location = data.get("name") or "Unknown"
    description = conditions[0].get("description") or "Unknown"
    return {
        "type": "weather",
        "platform": "OpenWeatherMap",
        "location": location,
        "temperature": f"{temp}°C",
        "description": description,
        "humidity": f"{main.get('humidity') or 0}%",
        "wind": f"{(data.get('wind') or {}).get('speed') or 0} m/s",
        "summary": f"{temp}°C and {description} in {location}",
    }


def normalize_news(data: Dict[str, Any]) -> Dict[str, Any]:
    articles = data.get("articles") or []
    return {
        "type": "news",
        "platform": "NewsAPI",
        "total_results": data.get("totalResults") or len(articles),
        "articles": [
            {
                "title": a.get("title"),
                "description": a.get("description"),
                "source": (a.get("source") or {}).get("name"),
                "url": a.get("url"),
                "published_at": a.get("publishedAt"),
            }
            for a in articles[:5]
        ],
        "summary": f"Found {len(articles)} news articles",
    }


def normalize_currency(data: Dict[str, Any]) -> Dict[str, Any]:
    base = data.get("base") or "USD"
    rates = data.get("rates") or {}
    return {
        "type": "currency",
        "platform": "ExchangeRate",
        "base": base,
        "rates": rates,
        "top_rates": ", ".join(f"{code}: {rate}" for code, rate in list(rates.items())[:5]),
        "summary": f"Exchange rates for {base}",
    }


def normalize_joke(data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("joke"):
        joke = data["joke"]
    elif data.get("setup"):
        joke = f"{data['setup']} - {data.get('delivery', '')}".rstrip(" -")
    else:
        joke = "No joke available"
    return {
        "type": "entertainment",
        "platform": "JokeAPI",
        "content": joke,
        "category": data.get("category") or "general",
        "summary": joke,
    }


def normalize_github(data: Any) -> Dict[str, Any]:
    if isinstance(data, list):
        return {
            "type": "repositories",
            "platform": "GitHub",
            "count": len(data),
            "repos": [
                {
                    "name": repo.get("name"),
                    "description": repo.get("description"),
                    "stars": repo.get("stargazers_count"),
                    "url": repo.get("html_url"),
                }
                for repo in data[:5]
            ],
            "summary": f"Found {len(data)} repositories",
        }

    name = data.get("name") or data.get("login")
    return {
        "type": "github_resource",
        "platform": "GitHub",
        "name": name,
        "description": data.get("description") or data.get("bio"),
        "url": data.get("html_url"),
        "public_repos": data.get("public_repos"),
        "followers": data.get("followers"),
        "summary": f"GitHub {data.get('type') or 'resource'}: {name}",
    }


def normalize_stripe(data: Dict[str, Any]) -> Dict[str, Any]:
    amount = data.get("amount")
    return {
        "type": "payment",
        "platform": "Stripe",
        "id": data.get("id"),
        "amount": f"${float(amount) / 100:.2f}" if amount else "N/A",
        "currency": (data.get("currency") or "").upper() or None,
        "status": data.get("status"),
        "description": data.get("description"),
        "summary": f"Payment {data.get('id')} - {data.get('status')}",
    }


def normalize_razorpay(data: Dict[str, Any]) -> Dict[str, Any]:
    amount = data.get("amount")
    return {
        "type": "payment",
        "platform": "Razorpay",
        "id": data.get("id"),
        "amount": f"₹{float(amount) / 100:.2f}" if amount else "N/A",
        "currency": data.get("currency"),
        "status": data.get("status"),
        "summary": f"Razorpay payment {data.get('id')}",
    }


def normalize_easypaisa(data: Dict[str, Any]) -> Dict[str, Any]:
    amount = data.get("amount")
    return {
        "type": "payment",
        "platform": "EasyPaisa",
        "transaction_id": data.get("transactionId") or data.get("orderId"),
        "amount": f"PKR {amount}" if amount else "N/A",
        "msisdn": data.get("msisdn"),
        "status": data.get("status") or "initiated",
        "summary": f"EasyPaisa payment to {data.get('msisdn')}",
    }


def normalize_jazzcash(data: Dict[str, Any]) -> Dict[str, Any]:
    # JazzCash reports pp_Amount in paisa
    amount = data.get("pp_Amount")
    reference = data.get("pp_TxnRefNo") or data.get("transactionId")
    return {
        "type": "payment",
        "platform": "JazzCash",
        "reference_no": reference,
        "amount": f"PKR {float(amount) / 100:g}" if amount else "N/A",
        "response_code": data.get("pp_ResponseCode"),
        "message": data.get("pp_ResponseMessage"),
        "summary": f"JazzCash transaction {reference}",
    }


def normalize_twilio(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "communication",
        "platform": "Twilio",
        "sid": data.get("sid"),
        "to": data.get("to"),
        "from": data.get("from"),
        "body": data.get("body"),
        "status": data.get("status"),
        "summary": f"SMS to {data.get('to')}: {data.get('status')}",
    }


def normalize_sendgrid(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "email",
        "platform": "SendGrid",
        "message_id": data.get("message_id"),
        "to": data.get("to"),
        "from": data.get("from"),
        "subject": data.get("subject"),
        "status": "sent",
        "summary": f"Email sent to {data.get('to')}",
    }


def extract_summary(data: Any) -> str:
    """Best-effort one-line summary for payloads with no dedicated converter."""
    if isinstance(data, str):
        return data[:100]
    if isinstance(data, dict):
        if data.get("message"):
            return str(data["message"])
        if data.get("status"):
            return f"Status: {data['status']}"
        if data.get("result") is not None:
            return f"Result: {json.dumps(data['result'], default=str)[:100]}"
        return "API call completed"
    return str(data)[:100]


def normalize_default(data: Any) -> Dict[str, Any]:
    success = data.get("success", True) if isinstance(data, dict) else True
    return {
        "type": "api_response",
        "platform": "External API",
        "success": success,
        "data": data,
        "summary": extract_summary(data),
    }


class ResponseNormalizer:
    """Case-insensitive table of per-provider converters."""

    def __init__(self) -> None:
        self._converters: Dict[str, Converter] = {}
        self._register_builtin()

    def _register_builtin(self) -> None:
        for names, converter in (
            (("weather", "openweathermap"), normalize_weather),
            (("news", "newsapi"), normalize_news),
            (("currency", "exchangerate"), normalize_currency),
            (("joke", "jokeapi"), normalize_joke),
            (("github",), normalize_github),
            (("stripe",), normalize_stripe),
            (("razorpay",), normalize_razorpay),
            (("easypaisa",), normalize_easypaisa),
            (("jazzcash",), normalize_jazzcash),
            (("twilio",), normalize_twilio),
            (("sendgrid",), normalize_sendgrid),
        ):
            for name in names:
                self.register(name, converter)

    def register(self, name: str, converter: Converter) -> None:
        """Register (or replace) the converter for a service name."""
        self._converters[name.lower()] = converter

    def get_converter(self, name: Optional[str]) -> Converter:
        return self._converters.get((name or "").lower(), normalize_default)

    def normalize(self, service_name: str, raw: Any) -> Dict[str, Any]:
        """Normalize a raw payload into the common envelope. Never raises."""
        timestamp = datetime.now(timezone.utc).isoformat()

        if raw is None or raw == {} or raw == [] or raw == "":
            return {
                "type": "empty",
                "service": service_name,
                "platform": service_name,
                "message": "No data returned",
                "summary": "No data returned",
                "timestamp": timestamp,
            }

        converter = self.get_converter(service_name)
        try:
            normalized = converter(raw)
        except Exception as e:
            logger.warning(f"Normalization failed for {service_name}, using default converter: {e}")
            normalized = normalize_default(raw)

        return {**normalized, "timestamp": timestamp, "service": service_name}
