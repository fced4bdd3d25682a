"""
Deterministic regex rule table for intent parsing.

No AI models used. Rules are tried in a fixed priority order and the
first match wins: no scoring, no backtracking across rules. Each rule is
bound to an (action, service, resource) triple and an extraction function
that turns the regex match into surface-level parameters.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .models import ParsedIntent

Extractor = Callable[[re.Match], Dict[str, Any]]


@dataclass(frozen=True)
class Rule:
    name: str
    pattern: re.Pattern
    action: str
    service: Optional[str]
    resource: str
    extract: Extractor
    # Regex group holding the service name, for rules like "pay ... using X"
    service_group: Optional[int] = None


_RULES: List[Rule] = []

_QUOTED_OR_BARE = r"(?:[\"'](.+?)[\"']|(.+?))"


def _clean(value: Optional[str]) -> str:
    """Trim quotes, trailing punctuation and any trailing key=value pairs."""
    if not value:
        return ""
    value = re.split(r"\s+\w+\s*=", value, maxsplit=1)[0]
    return value.strip().strip("\"'").rstrip("?!.,;").strip()


def _first(match: re.Match, *groups: int) -> str:
    for g in groups:
        if match.group(g):
            return _clean(match.group(g))
    return ""


def _extract_text(match: re.Match) -> Dict[str, Any]:
    return {"text": _first(match, 1, 2) or "Hello from IntentBridge!"}


def _extract_slack(match: re.Match) -> Dict[str, Any]:
    params = _extract_text(match)
    if match.group(3):
        params["channel"] = match.group(3)
    return params


def _extract_sms(match: re.Match) -> Dict[str, Any]:
    return {
        "body": _first(match, 1, 2),
        "to": re.sub(r"[\s-]", "", match.group(3)),
    }


def _extract_email(match: re.Match) -> Dict[str, Any]:
    params = {"to": match.group(1).rstrip(".,;")}
    subject = _clean(match.group(2))
    if subject:
        params["subject"] = subject
    return params


def _extract_payment(match: re.Match) -> Dict[str, Any]:
    params: Dict[str, Any] = {"amount": int(round(float(match.group(1)) * 100))}
    if match.group(2):
        params["currency"] = match.group(2).lower()
    return params


def _extract_location(match: re.Match) -> Dict[str, Any]:
    return {"location": _clean(match.group(1))}


def _extract_repo_name(match: re.Match) -> Dict[str, Any]:
    return {"name": _clean(match.group(1))}


def _extract_username(match: re.Match) -> Dict[str, Any]:
    return {"username": _first(match, 1, 2).lstrip("@")}


def _extract_query(match: re.Match) -> Dict[str, Any]:
    return {"query": _clean(match.group(1))}


def _extract_currency(match: re.Match) -> Dict[str, Any]:
    code = match.group(1)
    return {"currency": code.upper()} if code else {}


def _extract_word(match: re.Match) -> Dict[str, Any]:
    return {"word": _clean(match.group(1)).lower()}


def _extract_ip(match: re.Match) -> Dict[str, Any]:
    return {"ip": match.group(1)}


def _extract_noop(match: re.Match) -> Dict[str, Any]:
    return {}


def _build_rules() -> List[Rule]:
    """Build the rule table in priority order."""
    rules = []

    # --- Social / messaging ---
    rules.append(Rule(
        name="twitter_post",
        pattern=re.compile(rf"\b(?:post|tweet|share)\s+{_QUOTED_OR_BARE}\s+(?:to|on)\s+twitter\b", re.I),
        action="CREATE", service="twitter", resource="post",
        extract=_extract_text,
    ))
    rules.append(Rule(
        name="slack_message",
        pattern=re.compile(
            rf"\b(?:send|message)\s+{_QUOTED_OR_BARE}\s+to\s+slack(?:\s+channel)?(?:\s+#?(\w+))?",
            re.I,
        ),
        action="SEND", service="slack", resource="message",
        extract=_extract_slack,
    ))
    rules.append(Rule(
        name="sms",
        pattern=re.compile(
            rf"\b(?:send\s+)?(?:an?\s+)?(?:sms|text\s+message)\s+{_QUOTED_OR_BARE}\s+to\s+(\+?\d[\d\s-]{{6,}}\d)",
            re.I,
        ),
        action="SEND", service="twilio", resource="message",
        extract=_extract_sms,
    ))
    rules.append(Rule(
        name="email",
        pattern=re.compile(
            r"\b(?:send\s+)?(?:an?\s+)?e-?mail\s+to\s+([\w.+-]+@[\w-]+(?:\.[\w-]+)+)"
            r"(?:\s+(?:saying|about|with\s+subject)\s+(.+))?",
            re.I,
        ),
        action="SEND", service="sendgrid", resource="email",
        extract=_extract_email,
    ))

    # --- Payments (service named in the text) ---
    rules.append(Rule(
        name="payment",
        pattern=re.compile(
            r"\b(?:charge|pay)\s+\$?(\d+(?:\.\d{1,2})?)\s*(usd|eur|gbp|pkr|inr)?\s+"
            r"(?:using|with|via|on|through)\s+(\w+)",
            re.I,
        ),
        action="CREATE", service=None, resource="payment",
        extract=_extract_payment,
        service_group=3,
    ))

    # --- Weather ---
    rules.append(Rule(
        name="weather",
        pattern=re.compile(
            r"\b(?:(?:get|check|what's|what\s+is|fetch|show)\s+(?:me\s+)?(?:the\s+)?)?"
            r"weather\s+(?:forecast\s+)?(?:in|for|at)\s+(.+)",
            re.I,
        ),
        action="GET", service="weather", resource="forecast",
        extract=_extract_location,
    ))

    # --- GitHub ---
    rules.append(Rule(
        name="github_create_repo",
        pattern=re.compile(
            r"\bcreate\s+(?:a\s+)?(?:new\s+)?(?:github\s+)?repo(?:sitory)?\s+(?:called\s+|named\s+)?[\"']?([\w.-]+)",
            re.I,
        ),
        action="CREATE", service="github", resource="repository",
        extract=_extract_repo_name,
    ))
    rules.append(Rule(
        name="github_repos",
        pattern=re.compile(
            r"\b(?:list|show|get)\s+(?:the\s+)?(?:github\s+)?repos(?:itories)?\s+(?:of|for|by)\s+@?([\w-]+)"
            r"|\b@?([\w-]+)'s\s+(?:github\s+)?repos(?:itories)?\b",
            re.I,
        ),
        action="GET", service="github", resource="repos",
        extract=_extract_username,
    ))
    rules.append(Rule(
        name="github_user",
        pattern=re.compile(
            r"\bgithub\s+(?:user|profile)\s+(?:for\s+)?@?([\w-]+)"
            r"|\b(?:get|show|lookup|look\s+up)\s+github\s+(?:user\s+|profile\s+)?(?:for\s+)?@?([\w-]+)",
            re.I,
        ),
        action="GET", service="github", resource="user",
        extract=_extract_username,
    ))

    # --- News ---
    rules.append(Rule(
        name="news_search",
        pattern=re.compile(
            r"\b(?:search|find|get|show)\s+(?:me\s+)?(?:the\s+)?(?:latest\s+)?news\s+(?:about|on|for)\s+(.+)",
            re.I,
        ),
        action="SEARCH", service="news", resource="news",
        extract=_extract_query,
    ))
    rules.append(Rule(
        name="news_headlines",
        pattern=re.compile(r"\b(?:top\s+|latest\s+)?(?:headlines|news)\b", re.I),
        action="GET", service="news", resource="headlines",
        extract=_extract_noop,
    ))

    # --- Currency ---
    rules.append(Rule(
        name="currency_rate",
        pattern=re.compile(
            r"\b(?:exchange|currency|conversion)\s+rates?\b(?:\s+(?:for|from|of)\s+([A-Za-z]{3})\b)?",
            re.I,
        ),
        action="GET", service="currency", resource="rate",
        extract=_extract_currency,
    ))

    # --- Fun ---
    rules.append(Rule(
        name="joke",
        pattern=re.compile(r"\bjokes?\b", re.I),
        action="GET", service="joke", resource="joke",
        extract=_extract_noop,
    ))
    rules.append(Rule(
        name="fact",
        pattern=re.compile(r"\b(?:random|fun|useless)\s+facts?\b|\bfact\s+of\s+the\s+day\b", re.I),
        action="GET", service="facts", resource="fact",
        extract=_extract_noop,
    ))

    # --- Reference ---
    rules.append(Rule(
        name="definition",
        pattern=re.compile(
            r"\b(?:define|definition\s+of|meaning\s+of|what\s+does)\s+(?:the\s+word\s+)?[\"']?([A-Za-z-]+)[\"']?",
            re.I,
        ),
        action="GET", service="dictionary", resource="definition",
        extract=_extract_word,
    ))
    rules.append(Rule(
        name="ip_location",
        pattern=re.compile(
            r"\b(?:locate|lookup|look\s+up|where\s+is|geolocate)\s+(?:the\s+)?(?:ip\s+(?:address\s+)?)?"
            r"(\d{1,3}(?:\.\d{1,3}){3})\b",
            re.I,
        ),
        action="GET", service="ip", resource="location",
        extract=_extract_ip,
    ))

    return rules


def _get_rules() -> List[Rule]:
    """Lazy-initialize rules."""
    global _RULES
    if not _RULES:
        _RULES = _build_rules()
    return _RULES


def extract_key_value_pairs(text: str) -> Dict[str, Any]:
    """Extract explicit key=value pairs from text."""
    params = {}
    # Match: key=value or key="value with spaces"
    for match in re.finditer(r'\b(\w+)\s*=\s*(?:"([^"]+)"|(\S+))', text):
        key = match.group(1)
        value = match.group(2) if match.group(2) is not None else match.group(3)
        params[key] = _try_numeric(value)
    return params


def _try_numeric(value: str) -> Any:
    """Try to convert a string to int or float."""
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def fallback_intent(text: str) -> ParsedIntent:
    return ParsedIntent(
        action="GET",
        service="unknown",
        resource="data",
        parameters={"query": text},
    )


def match_rules(text: str) -> Optional[ParsedIntent]:
    """
    Match text against the rule table in priority order.

    Returns the ParsedIntent of the first matching rule, or None. Explicit
    key=value pairs in the text override extracted parameters.
    """
    text_clean = text.strip()
    if not text_clean:
        return None

    for rule in _get_rules():
        match = rule.pattern.search(text_clean)
        if not match:
            continue

        params = rule.extract(match)
        params.update(extract_key_value_pairs(text_clean))

        service = rule.service
        if rule.service_group is not None:
            service = match.group(rule.service_group).lower()

        return ParsedIntent(
            action=rule.action,
            service=service,
            resource=rule.resource,
            parameters=params,
        )

    return None
