from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

DESCRIPTION_KEY_LENGTH = 50
TOP_REQUESTS = 10
USAGE_CATEGORIES = ("openai", "deepseek", "template")

CallerKey = Tuple[str, str]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def caller_key(ip: Optional[str], user_agent: Optional[str]) -> CallerKey:
    return (ip or "unknown", user_agent or "unknown")


def description_key(description: str) -> str:
    return (description or "").lower()[:DESCRIPTION_KEY_LENGTH]


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AnalyticsSnapshot:
    total_requests: int
    unique_callers: int
    websites_generated: int
    provider_usage: Dict[str, int]
    popular_requests: List[Tuple[str, int]]
    start_time: datetime
    last_activity: datetime
    uptime_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalUsers": self.total_requests,
            "uniqueUsers": self.unique_callers,
            "websitesGenerated": self.websites_generated,
            "providerUsage": dict(self.provider_usage),
            "popularRequests": [{"request": r, "count": c} for r, c in self.popular_requests],
            "uptime": {
                "startTime": _iso(self.start_time),
                "lastActivity": _iso(self.last_activity),
                "duration": self.uptime_ms,
            },
        }


@dataclass
class AnalyticsRecorder:
    """Process-lifetime usage counters shared by all request handlers.

    Handlers run on FastAPI's threadpool, so every read and write goes
    through one lock. Nothing is persisted; a restart resets everything.
    """

    start_time: datetime = field(default_factory=_now)
    total_requests: int = 0
    websites_generated: int = 0
    unique_callers: Set[CallerKey] = field(default_factory=set)
    provider_usage: Dict[str, int] = field(default_factory=lambda: {c: 0 for c in USAGE_CATEGORIES})
    popular_requests: Dict[str, int] = field(default_factory=dict)
    last_activity: Optional[datetime] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.last_activity is None:
            self.last_activity = self.start_time

    def record_request(self, caller: CallerKey) -> None:
        with self._lock:
            self.total_requests += 1
            self.unique_callers.add(caller)
            self.last_activity = _now()

    def record_generation(self, description: str, category: str) -> None:
        if category not in USAGE_CATEGORIES:
            raise ValueError(f"unknown usage category: {category!r}")
        key = description_key(description)
        with self._lock:
            self.websites_generated += 1
            self.provider_usage[category] += 1
            self.popular_requests[key] = self.popular_requests.get(key, 0) + 1

    def _top_locked(self, limit: int) -> List[Tuple[str, int]]:
        # sorted() is stable, so equal counts keep first-seen order
        return sorted(self.popular_requests.items(), key=lambda kv: kv[1], reverse=True)[:limit]

    def top_requests(self, limit: int = TOP_REQUESTS) -> List[Tuple[str, int]]:
        with self._lock:
            return self._top_locked(limit)

    def snapshot(self, now: Optional[datetime] = None) -> AnalyticsSnapshot:
        now = now or _now()
        with self._lock:
            return AnalyticsSnapshot(
                total_requests=self.total_requests,
                unique_callers=len(self.unique_callers),
                websites_generated=self.websites_generated,
                provider_usage=dict(self.provider_usage),
                popular_requests=self._top_locked(TOP_REQUESTS),
                start_time=self.start_time,
                last_activity=self.last_activity or self.start_time,
                uptime_ms=max(0, int((now - self.start_time).total_seconds() * 1000)),
            )

    def brief(self) -> Dict[str, int]:
        with self._lock:
            return {
                "totalUsers": self.total_requests,
                "uniqueUsers": len(self.unique_callers),
                "websitesGenerated": self.websites_generated,
            }
