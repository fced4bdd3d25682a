"""
Pydantic models for the Intent Bridge.

Defines the service catalogue records (auth, endpoints, services), the
parsed intent and execution result types, and the learning-store records
that close the intent -> API call loop.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthType(str, Enum):
    """How an endpoint expects its credential to be presented."""

    NONE = "none"
    BEARER = "bearer"
    TOKEN = "token"
    BASIC = "basic"
    APIKEY = "apikey"
    OAUTH2 = "oauth2"


class Provenance(str, Enum):
    """Whether an execution result came from the network or a mock."""

    LIVE = "live"
    MOCK = "mock"


class ParseStage(str, Enum):
    """Which parser stage produced a ParsedIntent."""

    CACHE = "cache"
    DELEGATE = "delegate"
    RULES = "rules"
    FALLBACK = "fallback"


# Methods whose parameters travel in the query string
READ_METHODS = frozenset({"GET", "DELETE", "HEAD"})


class AuthSpec(BaseModel):
    """Auth declaration for a service or endpoint.

    The credential itself is an opaque string: it is either carried here
    (learned services), injected into the executor, or read from the
    environment variable named by ``env``.
    """

    model_config = ConfigDict(frozen=True)

    type: AuthType = AuthType.NONE
    required: bool = False
    env: Optional[str] = None
    header: Optional[str] = None
    query_param: Optional[str] = None
    credential: Optional[str] = None


class EndpointSpec(BaseModel):
    """A single operation on a service, keyed by ``{ACTION}_{RESOURCE}``."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    path: str = "/"
    param_mapping: Dict[str, str] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)
    default_params: Dict[str, Any] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    auth: Optional[AuthSpec] = None
    mock_response: Optional[Any] = None
    description: Optional[str] = None


class ServiceConfig(BaseModel):
    """A registered third-party API."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    base_url: str
    endpoints: Dict[str, EndpointSpec] = Field(default_factory=dict)
    auth: Optional[AuthSpec] = None


class ResolvedAPI(ServiceConfig):
    """A ServiceConfig copy with the endpoint chosen by a registry lookup."""

    endpoint_key: str
    selected_endpoint: EndpointSpec

    @property
    def effective_auth(self) -> Optional[AuthSpec]:
        """Endpoint auth wins over the service-wide declaration."""
        return self.selected_endpoint.auth or self.auth


class ParsedIntent(BaseModel):
    """Structured form of a free-text intent."""

    model_config = ConfigDict(frozen=True)

    action: str
    service: str
    resource: str
    parameters: Dict[str, Any] = Field(default_factory=dict)

    @property
    def endpoint_key(self) -> str:
        return f"{self.action}_{self.resource}"


class ParseResult(BaseModel):
    """A ParsedIntent tagged with the stage that produced it."""

    model_config = ConfigDict(frozen=True)

    intent: ParsedIntent
    stage: ParseStage


class ExecutionResult(BaseModel):
    """Outcome of one executor attempt. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    success: bool
    service: str
    provenance: Provenance
    data: Optional[Any] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    fallback_reason: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def mock(self) -> bool:
        return self.provenance == Provenance.MOCK

    @property
    def live(self) -> bool:
        return self.provenance == Provenance.LIVE


class LearnedPattern(BaseModel):
    """Last successful resolution for a canonical intent key."""

    key: str
    intent: str
    parsed: ParsedIntent
    service_key: str
    service_name: str
    endpoint_key: str
    execution_count: int = 1
    average_response_time_ms: float = 0.0
    last_used: str


class Stats(BaseModel):
    """Process-wide execution statistics, persisted with the patterns."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    unique_patterns: int = 0
    average_response_time_ms: float = 0.0


class BridgeResponse(BaseModel):
    """Uniform envelope returned by IntentBridge.execute()."""

    success: bool
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    raw: Optional[Any] = None
    mock: Optional[bool] = None
    execution_time_ms: Optional[float] = None
    service: Optional[str] = None
    fast_path: bool = False
    parse_stage: Optional[ParseStage] = None
    error: Optional[str] = None
    suggestion: Optional[str] = None
    available_apis: Optional[List[str]] = None
    endpoints: Optional[List[str]] = None
    example: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready dict without unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)
