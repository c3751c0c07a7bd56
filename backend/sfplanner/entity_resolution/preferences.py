"""
Per-session object usage history.

Feeds the re-ranker: objects a user queried often, successfully and
recently are boosted. Storage here is process memory with a session TTL;
durable persistence belongs to the surrounding service.

All timestamps are timezone-aware UTC.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from sfplanner.config import get_settings
from sfplanner.entity_resolution.classification import is_forbidden

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, int, float, str, None]


def to_utc(value: Timestamp) -> Optional[datetime]:
    """
    Normalize a timestamp to aware UTC. Accepts datetimes (naive ones are
    taken as UTC), epoch milliseconds and ISO 8601 strings.
    Raises ValueError for anything else.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(text))
    raise ValueError(f"not a timestamp: {value!r}")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ObjectPreference:
    """Usage statistics of one object within a session"""
    count: int = 0
    success_rate: float = 0.0
    last_used: Optional[datetime] = None
    
    def __post_init__(self):
        self.last_used = to_utc(self.last_used)
    
    def record(self, success: bool, when: datetime):
        self.count += 1
        self.success_rate = ((self.success_rate * (self.count - 1)) + (1 if success else 0)) / self.count
        self.last_used = to_utc(when)
    
    def days_since_last_use(self, now: datetime) -> Optional[float]:
        if self.last_used is None:
            return None
        return max(0.0, (to_utc(now) - to_utc(self.last_used)).total_seconds() / 86400)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObjectPreference":
        """
        Accepts stored shapes: {count, successRate, lastUsed} where lastUsed
        is epoch ms or an ISO string. Raises ValueError/TypeError on bad data.
        """
        if not isinstance(data, dict):
            raise TypeError(f"preference must be a mapping, got {type(data).__name__}")
        last_used = data.get("last_used") or data.get("lastUsed")
        return cls(
            count=int(data.get("count", 0)),
            success_rate=float(data.get("success_rate", data.get("successRate", 0.0))),
            last_used=last_used,
        )


@dataclass
class SessionHistory:
    preferences: Dict[str, ObjectPreference] = field(default_factory=dict)
    query_history: List[Dict[str, Any]] = field(default_factory=list)
    clarifications: Dict[str, Dict[str, Any]] = field(default_factory=dict)


class UserPreferenceStore:
    """Store and retrieve per-session object preferences"""
    
    def __init__(self, ttl_seconds: Optional[int] = None, history_limit: Optional[int] = None,
                 clock: Callable[[], float] = time.time):
        settings = get_settings()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.preference_session_ttl_seconds
        self.history_limit = history_limit if history_limit is not None else settings.preference_history_limit
        self._clock = clock
        self._sessions: Dict[str, tuple] = {}  # session id -> (SessionHistory, expires_at)
    
    def _get(self, session_id: str) -> SessionHistory:
        entry = self._sessions.get(session_id)
        if entry is None or self._clock() > entry[1]:
            self._sessions.pop(session_id, None)
            return SessionHistory()
        return entry[0]
    
    def _put(self, session_id: str, history: SessionHistory):
        self._sessions[session_id] = (history, self._clock() + self.ttl_seconds)
    
    def track_usage(self, session_id: str, question: str, object_name: str,
                    success: bool = True):
        """Record that a question was answered against object_name"""
        history = self._get(session_id)
        now = datetime.fromtimestamp(self._clock(), timezone.utc)
        
        history.query_history.insert(0, {
            'question': question,
            'object': object_name,
            'timestamp': now,
            'success': success
        })
        del history.query_history[self.history_limit:]
        
        history.preferences.setdefault(object_name, ObjectPreference()).record(success, now)
        self._put(session_id, history)
    
    def get_preferences(self, session_id: str) -> Dict[str, ObjectPreference]:
        return dict(self._get(session_id).preferences)
    
    def get_history(self, session_id: str) -> List[Dict[str, Any]]:
        return list(self._get(session_id).query_history)
    
    def record_clarification(self, session_id: str, question: str, object_name: str):
        """Remember the user's answer to a clarification prompt"""
        if is_forbidden(object_name):
            logger.warning(f"Ignoring clarification answer {object_name}: object is not queryable")
            return
        history = self._get(session_id)
        previous = history.clarifications.get(question)
        history.clarifications[question] = {
            'object': object_name,
            'timestamp': datetime.fromtimestamp(self._clock(), timezone.utc),
            'count': (previous['count'] if previous else 0) + 1
        }
        self._put(session_id, history)
    
    def get_clarification(self, session_id: str, question: str) -> Optional[str]:
        answer = self._get(session_id).clarifications.get(question)
        return answer['object'] if answer else None
