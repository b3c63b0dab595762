"""
Context-Aware Entity Enhancement

Runs after basic extraction and fills in what the text only refers to:
- Team self-references ("my team", "this team") from the current team,
  falling back to the caller's only team
- People ("assign to John", "for me") through a user lookup
- Bugs ("bug #12", "that bug") from the literal id or the most recent bug
- Temporal phrases ("last week") as a since-date filter
- Comparison operators ("more than 5")

An entity that is already present is never overwritten.

Author: AI System
Version: 2.0
"""

import re
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from logger import get_logger
from .base_types import Comparison, TimeRange
from .context import ConversationContext

logger = get_logger(__name__)

TEAM_SELF_REFERENCE = re.compile(r'\b(?:this|that|the|my|current|our)\s+team\b', re.IGNORECASE)

BUG_LITERAL_PATTERNS = (
    re.compile(r'\b(?:bug|issue)\s*#?\s*(\d+)\b', re.IGNORECASE),
    re.compile(r'(?<!\w)#(\d+)\b'),
)
BUG_BACK_REFERENCE = re.compile(
    r'\b(?:that|this|the|previous|last)\s+(?:bug|issue)\b(?!\s+(?:list|report|tracker))',
    re.IGNORECASE
)

# Email | one or two capitalized words | any single word
_NAME = r'([\w.+-]+@[\w-]+\.[\w.-]*\w|[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?|[A-Za-z][\w.-]*)'

PERSON_PATTERNS = {
    'assign_to': re.compile(r'\b(?i:assign(?:ed)?)\b.*?\b(?i:to)\s+' + _NAME),
    'for': re.compile(r'\b(?i:for)\s+' + _NAME),
    'user': re.compile(r'\b(?i:user)\s+' + _NAME),
    'member': re.compile(r'\b(?i:member)\s+' + _NAME),
}

# Which person patterns run for which intent, in order
PERSON_INTENTS = {
    'bug_assign': ('assign_to', 'for', 'user', 'member'),
    'bug_create': ('assign_to',),
    'bug_list': ('assign_to', 'for'),
    'user_profile': ('for', 'user', 'member'),
}

SELF_WORDS = {'me', 'myself'}

NAME_STOPWORDS = {
    'a', 'an', 'the', 'this', 'that', 'these', 'those', 'it', 'them', 'all', 'any',
    'each', 'every', 'everyone', 'someone', 'nobody', 'team', 'teams', 'bug', 'bugs',
    'issue', 'issues', 'now', 'today', 'tomorrow', 'later', 'review', 'my', 'our',
}

TEMPORAL_TABLE = (
    ('today', 0),
    ('yesterday', 1),
    ('this week', 7),
    ('last week', 14),
    ('this month', 30),
    ('last month', 60),
)
_TEMPORAL_RULES = [
    (phrase, days, re.compile(r'\b' + phrase.replace(' ', r'\s+') + r'\b', re.IGNORECASE))
    for phrase, days in TEMPORAL_TABLE
]

COMPARISON_RULES = (
    ('greater', re.compile(r'\b(?:more|greater|higher)(?:\s+\w+)?\s+than\b(?:\s+(\d+))?', re.IGNORECASE)),
    ('less', re.compile(r'\b(?:less|fewer|lower)(?:\s+\w+)?\s+than\b(?:\s+(\d+))?', re.IGNORECASE)),
    ('equal', re.compile(r'\b(?:equal\s+to|exactly)\b(?:\s+(\d+))?', re.IGNORECASE)),
)


def extract_time_range(message: str, now: Optional[datetime] = None) -> Optional[TimeRange]:
    """First temporal phrase in table order, as a since-date anchored at midnight."""
    now = now or datetime.now()
    for phrase, days, pattern in _TEMPORAL_RULES:
        if pattern.search(message):
            since = (now - timedelta(days=days)).replace(hour=0, minute=0, second=0, microsecond=0)
            return TimeRange(phrase=phrase, days=days, since=since)
    return None


def extract_comparisons(message: str) -> List[Comparison]:
    comparisons = []
    for operator, pattern in COMPARISON_RULES:
        for match in pattern.finditer(message):
            value = int(match.group(1)) if match.group(1) else None
            comparisons.append(Comparison(operator=operator, phrase=match.group(0).strip(), value=value))
    return comparisons


async def resolve_sole_team(collaborators, retry_manager, user_id: str) -> Optional[Dict[str, Any]]:
    """The caller's team when they belong to exactly one, else None."""
    result = await retry_manager.execute(
        'teams.list_for_user',
        lambda: collaborators.teams.list_for_user(user_id),
        idempotent=True
    )
    teams = (result.get('data') or {}).get('teams') or [] if result.get('success') else []
    if len(teams) == 1:
        return teams[0]
    return None


class EntityEnhancer:
    """Resolves references in extracted entities against context and collaborators"""

    def __init__(self, collaborators, retry_manager, clock: Callable[[], datetime] = datetime.now):
        self.collaborators = collaborators
        self.retry_manager = retry_manager
        self.clock = clock

    async def enhance(
        self,
        message: str,
        intent: str,
        entities: Dict[str, Any],
        user_id: str,
        context: ConversationContext
    ) -> Dict[str, Any]:
        """
        Add context-derived entities.

        Args:
            message: Original message text
            intent: Classified intent
            entities: Output of basic extraction (not modified)
            user_id: Caller
            context: Turn view of the caller's conversation context

        Returns:
            New entity map, a superset of the input
        """
        enhanced = dict(entities)

        await self._resolve_team(message, enhanced, user_id, context)
        await self._resolve_person(message, intent, enhanced, user_id)
        self._resolve_bug(message, enhanced, context)

        if 'time_filter' not in enhanced:
            time_range = self.time_range(message)
            if time_range:
                enhanced['time_filter'] = time_range.to_filter()

        if 'comparison' not in enhanced:
            comparisons = extract_comparisons(message)
            if comparisons:
                enhanced['comparison'] = {
                    'operator': comparisons[0].operator,
                    'value': comparisons[0].value,
                }

        added = sorted(set(enhanced) - set(entities))
        if added:
            logger.debug(f"[ENHANCE] {intent}: resolved {added}")
        return enhanced

    def time_range(self, message: str) -> Optional[TimeRange]:
        return extract_time_range(message, self.clock())

    async def _resolve_team(self, message, entities, user_id, context):
        if 'team_id' in entities or not TEAM_SELF_REFERENCE.search(message):
            return

        if context.current_team and context.current_team.get('id') is not None:
            entities['team_id'] = context.current_team['id']
            return

        try:
            team = await resolve_sole_team(self.collaborators, self.retry_manager, user_id)
        except Exception as e:
            logger.warning(f"[ENHANCE] Team lookup for {user_id} failed: {e}")
            return
        if team:
            entities['team_id'] = team['id']
            entities['team_defaulted'] = True

    async def _resolve_person(self, message, intent, entities, user_id):
        if 'assigned_user_id' in entities:
            return

        name = self._find_person(message, PERSON_INTENTS.get(intent, ()))
        if not name:
            return

        entities.setdefault('person_reference', name)
        if name.lower() in SELF_WORDS:
            entities['assigned_user_id'] = user_id
            return

        try:
            result = await self.retry_manager.execute(
                'users.search',
                lambda: self.collaborators.users.search(user_id, name, {}),
                idempotent=True
            )
        except Exception as e:
            logger.warning(f"[ENHANCE] User lookup for '{name}' failed: {e}")
            return

        users = (result.get('data') or {}).get('users') or [] if result.get('success') else []
        user = self._best_user(users, name)
        if user:
            entities['assigned_user_id'] = user['id']
            entities['assigned_user_name'] = user.get('name', name)
        else:
            logger.debug(f"[ENHANCE] No user matches '{name}'")

    @staticmethod
    def _best_user(users: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
        """Exact name or email first, then a whole-word name match, then the first hit."""
        needle = name.lower()
        word = re.compile(r'\b' + re.escape(needle) + r'\b')
        for test in (
            lambda u: needle in (u.get('name', '').lower(), u.get('email', '').lower()),
            lambda u: bool(word.search(u.get('name', '').lower())),
        ):
            for user in users:
                if test(user):
                    return user
        return users[0] if users else None

    @staticmethod
    def _find_person(message: str, pattern_names) -> Optional[str]:
        for pattern_name in pattern_names:
            match = PERSON_PATTERNS[pattern_name].search(message)
            if not match:
                continue
            name = match.group(1).strip().rstrip('.,;:!?')
            if name and name.lower() not in NAME_STOPWORDS:
                return name
        return None

    @staticmethod
    def _resolve_bug(message, entities, context):
        if 'bug_id' in entities:
            return

        for pattern in BUG_LITERAL_PATTERNS:
            match = pattern.search(message)
            if match:
                entities['bug_id'] = match.group(1)
                return

        if BUG_BACK_REFERENCE.search(message) and context.recent_bugs:
            entities['bug_id'] = context.recent_bugs[0]['id']
