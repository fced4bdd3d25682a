"""
Static service catalogue registered at start-up.

Free public APIs. Keyed services declare their credential through an
AuthSpec; without that credential the executor answers from the endpoint's
``mock_response`` sample instead of calling out.
"""

import logging

from .models import AuthSpec, AuthType, EndpointSpec, ServiceConfig
from .registry import APIRegistry

logger = logging.getLogger("intent-bridge.catalogue")


def _weather() -> ServiceConfig:
    auth = AuthSpec(
        type=AuthType.APIKEY,
        required=True,
        env="OPENWEATHER_API_KEY",
        query_param="appid",
    )
    sample = {
        "name": "{q}",
        "main": {"temp": 22, "humidity": 65},
        "weather": [{"description": "partly cloudy"}],
        "wind": {"speed": 10},
    }
    return ServiceConfig(
        key="weather",
        name="OpenWeatherMap",
        base_url="https://api.openweathermap.org/data/2.5",
        auth=auth,
        endpoints={
            "GET_weather": EndpointSpec(
                method="GET",
                path="/weather",
                param_mapping={"location": "q", "city": "q", "place": "q"},
                required=["q"],
                default_params={"units": "metric"},
                mock_response=sample,
            ),
            "GET_forecast": EndpointSpec(
                method="GET",
                path="/forecast",
                param_mapping={"location": "q", "city": "q"},
                required=["q"],
                default_params={"units": "metric"},
                mock_response=sample,
            ),
        },
    )


def _news() -> ServiceConfig:
    auth = AuthSpec(
        type=AuthType.APIKEY,
        required=True,
        env="NEWS_API_KEY",
        query_param="apiKey",
    )
    sample = {
        "totalResults": 1,
        "articles": [
            {
                "title": "AI agents get uniform API access",
                "description": "Intent routing turns plain requests into API calls",
                "source": {"name": "Tech News"},
                "url": "https://example.com/news/intent-routing",
                "publishedAt": "2024-01-01T00:00:00Z",
            }
        ],
    }
    return ServiceConfig(
        key="news",
        name="NewsAPI",
        base_url="https://newsapi.org/v2",
        auth=auth,
        endpoints={
            "GET_headlines": EndpointSpec(
                method="GET",
                path="/top-headlines",
                param_mapping={"country": "country", "category": "category", "topic": "q"},
                default_params={"country": "us"},
                mock_response=sample,
            ),
            "SEARCH_news": EndpointSpec(
                method="GET",
                path="/everything",
                param_mapping={"query": "q", "topic": "q", "search": "q"},
                required=["q"],
                default_params={"sortBy": "popularity"},
                mock_response=sample,
            ),
        },
    )


def _currency() -> ServiceConfig:
    return ServiceConfig(
        key="currency",
        name="ExchangeRate",
        base_url="https://api.exchangerate-api.com/v4",
        endpoints={
            "GET_rate": EndpointSpec(
                method="GET",
                path="/latest/{base}",
                param_mapping={"from": "base", "currency": "base"},
                default_params={"base": "USD"},
                mock_response={
                    "base": "{base}",
                    "rates": {"EUR": 0.85, "GBP": 0.73, "JPY": 110.5},
                },
            ),
        },
    )


def _joke() -> ServiceConfig:
    return ServiceConfig(
        key="joke",
        name="JokeAPI",
        base_url="https://v2.jokeapi.dev",
        endpoints={
            "GET_joke": EndpointSpec(
                method="GET",
                path="/joke/Any",
                param_mapping={"type": "type", "category": "category"},
                default_params={"safe-mode": "", "type": "single"},
                mock_response={
                    "category": "Programming",
                    "joke": "Why do programmers prefer dark mode? Because light attracts bugs!",
                },
            ),
        },
    )


def _github() -> ServiceConfig:
    token = AuthSpec(type=AuthType.TOKEN, env="GITHUB_TOKEN")
    return ServiceConfig(
        key="github",
        name="GitHub",
        base_url="https://api.github.com",
        auth=token,
        endpoints={
            "GET_user": EndpointSpec(
                method="GET",
                path="/users/{username}",
                param_mapping={"username": "username", "user": "username"},
                required=["username"],
                mock_response={
                    "login": "{username}",
                    "type": "User",
                    "public_repos": 42,
                    "followers": 1000,
                    "html_url": "https://github.com/{username}",
                },
            ),
            "GET_repos": EndpointSpec(
                method="GET",
                path="/users/{username}/repos",
                param_mapping={"username": "username", "user": "username"},
                required=["username"],
                default_params={"sort": "updated", "per_page": 10},
                mock_response=[
                    {
                        "name": "hello-world",
                        "description": "My first repository",
                        "stargazers_count": 7,
                        "html_url": "https://github.com/{username}/hello-world",
                    }
                ],
            ),
            "CREATE_repository": EndpointSpec(
                method="POST",
                path="/user/repos",
                param_mapping={"name": "name", "description": "description"},
                required=["name"],
                auth=AuthSpec(type=AuthType.TOKEN, required=True, env="GITHUB_TOKEN"),
                mock_response={
                    "name": "{name}",
                    "type": "Repository",
                    "html_url": "https://github.com/octocat/{name}",
                },
            ),
        },
    )


def _facts() -> ServiceConfig:
    return ServiceConfig(
        key="facts",
        name="UselessFacts",
        base_url="https://uselessfacts.jsph.pl",
        endpoints={
            "GET_fact": EndpointSpec(
                method="GET",
                path="/api/v2/facts/random",
                default_params={"language": "en"},
                mock_response={"text": "Honey never spoils."},
            ),
        },
    )


def _dictionary() -> ServiceConfig:
    return ServiceConfig(
        key="dictionary",
        name="DictionaryAPI",
        base_url="https://api.dictionaryapi.dev/api/v2",
        endpoints={
            "GET_definition": EndpointSpec(
                method="GET",
                path="/entries/en/{word}",
                param_mapping={"word": "word", "define": "word", "meaning": "word"},
                required=["word"],
            ),
        },
    )


def _ip() -> ServiceConfig:
    return ServiceConfig(
        key="ip",
        name="IPGeolocation",
        base_url="https://ipapi.co",
        endpoints={
            "GET_location": EndpointSpec(
                method="GET",
                path="/{ip}/json",
                param_mapping={"ip": "ip", "address": "ip"},
                required=["ip"],
            ),
        },
    )


CATALOGUE = (_weather, _news, _currency, _joke, _github, _facts, _dictionary, _ip)


def build_default_registry() -> APIRegistry:
    """Create a registry pre-loaded with the static catalogue."""
    registry = APIRegistry()
    for factory in CATALOGUE:
        config = factory()
        registry.register(config.key, config)
    logger.info(f"Registered {len(registry)} catalogue APIs")
    return registry
