"""
Learning engine: remembers which resolution worked for an intent.

Successful executions are stored under a canonical key derived from the
raw intent text, so an exact repeat (modulo case, quotes and whitespace)
can skip the parser. Aggregate statistics are kept alongside the patterns
and the whole store is rewritten to a JSON file after every recorded
execution. Persistence problems are logged and never propagate: the engine
keeps working from memory.
"""

import json
import logging
import os
import re
import tempfile
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .exceptions import PersistenceError
from .models import ExecutionResult, LearnedPattern, ParsedIntent, ResolvedAPI, Stats

logger = logging.getLogger("intent-bridge.learning")


def _get_config() -> Dict[str, Any]:
    return {
        "path": os.getenv("INTENT_BRIDGE_LEARNING_FILE", "learning.json"),
        "max_patterns": int(os.getenv("INTENT_BRIDGE_MAX_PATTERNS", "0")),
    }


def canonical_key(text: str) -> str:
    """Lowercase, trim, drop quotes, collapse whitespace runs to '_'."""
    key = (text or "").lower().strip()
    key = re.sub(r"['\"]", "", key)
    return re.sub(r"\s+", "_", key)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LearningEngine:
    """Pattern memory plus execution statistics backed by a JSON file."""

    def __init__(self, path: Optional[str] = None, max_patterns: Optional[int] = None):
        """
        Initialize the engine and load any existing store.

        Args:
            path: Store location (default: INTENT_BRIDGE_LEARNING_FILE)
            max_patterns: Evict least-recently-used patterns beyond this
                many. 0 or None keeps every pattern.
        """
        cfg = _get_config()
        self.path = path or cfg["path"]
        limit = cfg["max_patterns"] if max_patterns is None else max_patterns
        self.max_patterns = limit if limit and limit > 0 else None
        # Insertion order, used for reporting ties
        self.patterns: Dict[str, LearnedPattern] = {}
        # Least recently used first, used only for eviction
        self._recency: "OrderedDict[str, None]" = OrderedDict()
        self.stats = Stats()
        self.load()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Load the store. An absent or unreadable file starts empty."""
        try:
            saved = self._read()
        except PersistenceError as e:
            logger.warning(f"Starting with fresh learning data: {e}")
            self.patterns = {}
            self._recency = OrderedDict()
            self.stats = Stats()
            return

        if saved is None:
            logger.info("Starting with fresh learning data")
            return

        self.patterns = saved["patterns"]
        self.stats = saved["stats"]
        # ISO timestamps sort chronologically; sorted() keeps file order on ties
        by_use = sorted(self.patterns.values(), key=lambda p: p.last_used)
        self._recency = OrderedDict((p.key, None) for p in by_use)
        logger.info(f"Loaded {len(self.patterns)} learned patterns from {self.path}")

    def _read(self) -> Optional[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            patterns = {
                key: LearnedPattern.model_validate(value)
                for key, value in (raw.get("patterns") or {}).items()
            }
            stats = Stats.model_validate(raw.get("stats") or {})
        except (OSError, ValueError, AttributeError, ValidationError) as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e
        return {"patterns": patterns, "stats": stats}

    def save(self) -> None:
        """Write the whole store. Failures are logged, not raised."""
        try:
            self._write()
        except PersistenceError as e:
            logger.error(f"Could not save learning data: {e}")

    def _write(self) -> None:
        data = {
            "patterns": {k: p.model_dump(mode="json") for k, p in self.patterns.items()},
            "stats": self.stats.model_dump(mode="json"),
            "lastUpdated": _now(),
        }
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".learning-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Could not write {self.path}: {e}") from e

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def check_pattern(self, intent: str) -> Optional[LearnedPattern]:
        return self.patterns.get(canonical_key(intent))

    def record_execution(
        self,
        intent: str,
        parsed: ParsedIntent,
        resolved: ResolvedAPI,
        result: ExecutionResult,
        elapsed_ms: float,
    ) -> None:
        """Update statistics (and the pattern on success), then persist."""
        stats = self.stats
        stats.total_executions += 1

        if result.success:
            stats.successful_executions += 1
            self._remember(intent, parsed, resolved, elapsed_ms)
        else:
            stats.failed_executions += 1

        # Incremental mean: the stored value is always the mean of all samples
        stats.average_response_time_ms += (elapsed_ms - stats.average_response_time_ms) / stats.total_executions

        self.save()

    def _remember(self, intent: str, parsed: ParsedIntent, resolved: ResolvedAPI, elapsed_ms: float) -> None:
        key = canonical_key(intent)
        existing = self.patterns.get(key)

        if existing is not None:
            existing.execution_count += 1
            existing.average_response_time_ms += (
                elapsed_ms - existing.average_response_time_ms
            ) / existing.execution_count
            existing.last_used = _now()
            # Keep the latest resolution in case the old one went stale
            existing.parsed = parsed
            existing.service_key = resolved.key
            existing.service_name = resolved.name
            existing.endpoint_key = resolved.endpoint_key
            self._recency.move_to_end(key)
            return

        self.patterns[key] = LearnedPattern(
            key=key,
            intent=intent,
            parsed=parsed,
            service_key=resolved.key,
            service_name=resolved.name,
            endpoint_key=resolved.endpoint_key,
            execution_count=1,
            average_response_time_ms=elapsed_ms,
            last_used=_now(),
        )
        self._recency[key] = None
        self.stats.unique_patterns += 1
        logger.debug(f"Learned pattern '{key}' -> {resolved.key}/{resolved.endpoint_key}")

        if self.max_patterns is not None:
            while len(self.patterns) > self.max_patterns:
                evicted, _ = self._recency.popitem(last=False)
                del self.patterns[evicted]
                logger.debug(f"Evicted least recently used pattern '{evicted}'")

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        stats = self.stats
        # sorted() is stable, so ties keep insertion order
        top = sorted(self.patterns.values(), key=lambda p: p.execution_count, reverse=True)[:5]
        if stats.total_executions > 0:
            success_rate = f"{stats.successful_executions / stats.total_executions * 100:.1f}%"
        else:
            success_rate = "N/A"
        return {
            **stats.model_dump(),
            "top_patterns": [
                {"intent": p.intent, "key": p.key, "count": p.execution_count} for p in top
            ],
            "success_rate": success_rate,
        }
