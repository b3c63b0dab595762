# Conversation context: per-user session memory and the store that owns it

import asyncio
import copy
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Deque, Dict, Iterable, List, Optional

from config import Config
from logger import get_logger
from ..base_types import to_serializable

logger = get_logger(__name__)

BUG_SNAPSHOT_FIELDS = ('id', 'title', 'status', 'priority', 'assigned_to', 'team_id')

# deque fields that hold newest-first entries (evict from the right)
NEWEST_FIRST_FIELDS = ('recent_bugs', 'recent_entities')


def _bug_snapshot(bug: Dict[str, Any]) -> Dict[str, Any]:
    return {key: bug[key] for key in BUG_SNAPSHOT_FIELDS if key in bug}


def _team_snapshot(team: Dict[str, Any]) -> Dict[str, Any]:
    return {'id': team.get('id'), 'name': team.get('name')}


@dataclass
class ConversationContext:
    """Short-term memory for one user, threaded across turns"""
    user_id: str
    current_team: Optional[Dict[str, Any]] = None
    recent_bugs: Deque[Dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=Config.RECENT_BUGS_LIMIT))
    recent_entities: Deque[Dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=Config.RECENT_ENTITIES_LIMIT))
    last_query: Optional[Dict[str, Any]] = None
    query_history: Deque[Dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=Config.QUERY_HISTORY_LIMIT))
    last_intent: Optional[str] = None
    last_entities: Dict[str, Any] = field(default_factory=dict)
    last_message: Optional[str] = None
    updated_at: datetime = field(default_factory=datetime.now)

    def push_bug(self, bug: Dict[str, Any]):
        """Put a bug at the front of recent_bugs, dropping any older copy."""
        if not isinstance(bug, dict) or bug.get('id') is None:
            return
        existing = [b for b in self.recent_bugs if b.get('id') == bug['id']]
        for stale in existing:
            self.recent_bugs.remove(stale)
        self.recent_bugs.appendleft(_bug_snapshot(bug))

    def merge_result(self, data: Optional[Dict[str, Any]]):
        """Fold the data fragments of a successful action result into context."""
        if not isinstance(data, dict):
            return

        team = data.get('team')
        if isinstance(team, dict) and team.get('id') is not None:
            self.current_team = _team_snapshot(team)

        bugs = data.get('bugs')
        if isinstance(bugs, list) and bugs:
            # keep list order: bugs[0] ends up at recent_bugs[0]
            for bug in reversed(bugs[:Config.RECENT_BUGS_LIMIT]):
                self.push_bug(bug)

        bug = data.get('bug')
        if isinstance(bug, dict):
            self.push_bug(bug)

    def remember(
        self,
        message: str,
        intent: str,
        entities: Dict[str, Any],
        envelope: Dict[str, Any]
    ):
        """Record the last turn and append it to the query log."""
        self.last_message = message
        self.last_intent = intent
        self.last_entities = dict(entities)
        self.last_query = envelope
        self.query_history.append({
            'timestamp': envelope.get('timestamp'),
            'message': message,
            'intent': intent,
            'success': envelope.get('success'),
        })
        if entities:
            self.recent_entities.appendleft(to_serializable(entities))
        self.updated_at = datetime.now()

    def copy(self) -> 'ConversationContext':
        return copy.deepcopy(self)

    def merged_with(self, prior_context: Optional[Dict[str, Any]]) -> 'ConversationContext':
        """Turn-local copy with caller-supplied values layered on top."""
        view = self.copy()
        if prior_context:
            apply_patch(view, prior_context)
        return view

    def threaded_with(self, previous_result: Optional[Dict[str, Any]]) -> 'ConversationContext':
        """Turn-local copy that sees a previous segment's result first."""
        view = self.copy()
        if previous_result:
            if previous_result.get('success'):
                view.merge_result(previous_result.get('data'))
            view.last_query = {'action_result': previous_result}
        return view

    def to_patch(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != 'user_id'}

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


def _bounded(name: str, values: Iterable[Any], limit: int) -> Deque[Any]:
    items = list(values)
    if name in NEWEST_FIRST_FIELDS:
        items = items[:limit]
    else:
        items = items[-limit:]
    return deque(items, maxlen=limit)


def apply_patch(context: ConversationContext, patch: Dict[str, Any]):
    """Write patch values onto a context, keeping buffer bounds."""
    known = {f.name for f in fields(context)} - {'user_id'}
    for key, value in patch.items():
        if key not in known:
            raise ValueError(f"Unknown context field: {key}")
        current = getattr(context, key)
        if isinstance(current, deque):
            setattr(context, key, _bounded(key, value or (), current.maxlen))
        elif key == 'current_team' and isinstance(value, dict):
            context.current_team = _team_snapshot(value)
        else:
            setattr(context, key, value)


# ============================================================================
# SESSION STORE
# ============================================================================

class SessionStore(ABC):
    """
    Per-user session state: conversation context plus message history.

    Contexts are created lazily with defaults on first access and only
    removed by clear(). lock() hands out one asyncio.Lock per user so a
    user's messages are handled one at a time.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock(self, user_id: str) -> asyncio.Lock:
        if user_id not in self._locks:
            self._locks[user_id] = asyncio.Lock()
        return self._locks[user_id]

    def release_lock(self, user_id: str) -> None:
        """Forget a user's lock unless a message is being handled under it."""
        lock = self._locks.get(user_id)
        if lock is not None and not lock.locked():
            del self._locks[user_id]

    @abstractmethod
    def get(self, user_id: str) -> ConversationContext:
        """Context for a user, created with defaults if missing"""

    @abstractmethod
    def update(self, user_id: str, patch: Dict[str, Any]) -> ConversationContext:
        """Apply field values to a user's context"""

    @abstractmethod
    def clear(self, user_id: str) -> None:
        """Drop a user's context and history"""

    @abstractmethod
    def append_history(self, user_id: str, message: str) -> None:
        """Append a user message to the bounded conversation history"""

    @abstractmethod
    def get_history(self, user_id: str) -> List[Dict[str, Any]]:
        """Conversation history, oldest first"""


class InMemorySessionStore(SessionStore):
    """Process-lifetime session store"""

    def __init__(self):
        super().__init__()
        self._contexts: Dict[str, ConversationContext] = {}
        self._history: Dict[str, Deque[Dict[str, Any]]] = {}

    def get(self, user_id: str) -> ConversationContext:
        if user_id not in self._contexts:
            self._contexts[user_id] = ConversationContext(user_id=user_id)
            logger.debug(f"[CONTEXT] Created context for {user_id}")
        return self._contexts[user_id]

    def update(self, user_id: str, patch: Dict[str, Any]) -> ConversationContext:
        context = self.get(user_id)
        apply_patch(context, patch)
        context.updated_at = datetime.now()
        return context

    def clear(self, user_id: str) -> None:
        self._contexts.pop(user_id, None)
        self._history.pop(user_id, None)
        self.release_lock(user_id)
        logger.debug(f"[CONTEXT] Cleared context for {user_id}")

    def append_history(self, user_id: str, message: str) -> None:
        history = self._history.setdefault(
            user_id, deque(maxlen=Config.CONVERSATION_HISTORY_LIMIT)
        )
        history.append({
            'timestamp': datetime.now().isoformat(),
            'message': message,
            'type': 'user',
        })

    def get_history(self, user_id: str) -> List[Dict[str, Any]]:
        return list(self._history.get(user_id, ()))

    def has_context(self, user_id: str) -> bool:
        return user_id in self._contexts
