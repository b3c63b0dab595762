"""
Entity Extraction System

Extracts structured fields from natural language with an ordered chain of
extractors:
- Generic extractors (quoted strings, emails, bare integers) always run
- Each intent family adds its own chain (bug_create, team_create, bug_list, ...)
- Within a chain, alternative patterns are tried in order and the first
  match wins; keyword buckets resolve by bucket order, not text order
- A field is written once: later extractors never overwrite it

Author: AI System
Version: 2.0
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from logger import get_logger

logger = get_logger(__name__)

QUOTED_PATTERN = r'(?<!\w)(["\'])(.+?)\1(?!\w)'
EMAIL_PATTERN = r'\b([\w.+-]+@[\w-]+\.[\w.-]*\w)\b'


def _clean(value: str) -> str:
    return value.strip().strip('.,;:!?').strip()


# ============================================================================
# EXTRACTORS
# ============================================================================

class FieldExtractor(ABC):
    """Produces at most one value for one entity field"""

    # Keyword scans skip quoted text so titles cannot leak into buckets
    reads_quoted = True

    def __init__(self, field: str):
        self.field = field

    @abstractmethod
    def extract(self, message: str) -> Optional[Any]:
        """Return the extracted value, or None when nothing matched"""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.field})"


class PatternExtractor(FieldExtractor):
    """Ordered alternative regexes; the first one that matches wins."""

    def __init__(
        self,
        field: str,
        patterns: Sequence[str],
        transform: Optional[Callable[[str], Any]] = None,
        group: int = 1
    ):
        super().__init__(field)
        self.patterns = [re.compile(pattern, re.IGNORECASE) for pattern in patterns]
        self.transform = transform
        self.group = group

    def extract(self, message: str) -> Optional[Any]:
        for pattern in self.patterns:
            match = pattern.search(message)
            if not match:
                continue
            value = _clean(match.group(self.group))
            if not value:
                continue
            if self.transform:
                value = self.transform(value)
                if value is None or value == '':
                    continue
            return value
        return None


class KeywordBucketExtractor(FieldExtractor):
    """
    Ordered (value, keywords) buckets.

    The first bucket with any keyword present wins, even when a later
    bucket's keyword appears earlier in the text.
    """

    reads_quoted = False

    def __init__(self, field: str, buckets: Sequence[Tuple[str, Sequence[str]]]):
        super().__init__(field)
        self.buckets = [
            (value, re.compile(r'\b(?:' + '|'.join(re.escape(k) for k in keywords) + r')\b', re.IGNORECASE))
            for value, keywords in buckets
        ]

    def extract(self, message: str) -> Optional[str]:
        for value, pattern in self.buckets:
            if pattern.search(message):
                return value
        return None


class FlagExtractor(FieldExtractor):
    """Sets the field to True when any phrase (or raw pattern) is present."""

    reads_quoted = False

    def __init__(self, field: str, phrases: Sequence[str], patterns: Sequence[str] = ()):
        super().__init__(field)
        alternatives = [re.escape(p) for p in phrases] + list(patterns)
        self.pattern = re.compile(r'\b(?:' + '|'.join(alternatives) + r')\b', re.IGNORECASE)

    def extract(self, message: str) -> Optional[bool]:
        return True if self.pattern.search(message) else None


class ListExtractor(FieldExtractor):
    """Collects every match of one pattern."""

    def __init__(
        self,
        field: str,
        pattern: str,
        group: int = 1,
        transform: Optional[Callable[[str], Any]] = None
    ):
        super().__init__(field)
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.group = group
        self.transform = transform

    def extract(self, message: str) -> Optional[List[Any]]:
        values = []
        for match in self.pattern.finditer(message):
            value = match.group(self.group).strip()
            if not value:
                continue
            values.append(self.transform(value) if self.transform else value)
        return values or None


# ============================================================================
# RULE TABLES
# ============================================================================

PRIORITY_BUCKETS = (
    ('high', ('high', 'urgent', 'critical', 'important', 'asap')),
    ('low', ('low', 'minor', 'trivial')),
    ('medium', ('medium', 'normal', 'moderate')),
)

STATUS_BUCKETS = (
    ('open', ('open', 'reopen', 'reopened', 'new', 'todo')),
    ('closed', ('closed', 'close', 'done')),
    ('resolved', ('resolved', 'resolve', 'fixed')),
    ('in-progress', ('in progress', 'in-progress', 'ongoing', 'wip')),
)

COMPONENT_BUCKETS = (
    ('frontend', ('frontend', 'front-end', 'ui', 'css', 'button', 'page')),
    ('backend', ('backend', 'back-end', 'server')),
    ('database', ('database', 'db', 'sql')),
    ('api', ('api', 'endpoint')),
)

SORT_BUCKETS = (
    ('newest', ('latest', 'newest', 'recent', 'most recent')),
    ('oldest', ('oldest', 'earliest')),
    ('priority', ('by priority',)),
)

_PRIORITY_SUFFIX = re.compile(
    r'\s+(?:with\s+)?(?:(?:high|low|medium|critical|urgent)\s+priority|priority\s+\w+)\b.*$',
    re.IGNORECASE
)


def _clean_title(value: str) -> Optional[str]:
    title = _PRIORITY_SUFFIX.sub('', value).strip()
    return title or None


DESCRIPTION_PATTERNS = (
    r'(?:description|desc|details?):\s*(.+?)(?:\.(?:\s|$)|$)',
    r'(?:with description|described as)\s+["\']([^"\']+)["\']',
    r'\b(?:regarding|concerning)\s+(.+?)(?:\.(?:\s|$)|$)',
)


def _bug_create_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('title', (
            r'(?:bug|issue|problem)\s+(?:called|named|titled)?\s*["\']([^"\']+)["\']',
            r'(?:create|add|new|report|log|file)\s+(?:a\s+)?(?:bug|issue)\s+["\']([^"\']+)["\']',
            r'["\']([^"\']+)["\']\s+(?:bug|issue|problem)',
            r'(?:bug|issue|problem)\s+(?:called|named|titled)\s+(.+?)(?:[.,]|$)',
            r'(?:bug|issue)\s+(?:for|about|with)\s+(.+?)(?:[.,]|$)',
            r'(?:create|add|new|report|log|file)\s+(?:a\s+)?(?:bug|issue)\s+(?:for|about|with)?\s*(.+?)(?:[.,]|$)',
        ), transform=_clean_title),
        PatternExtractor('description', DESCRIPTION_PATTERNS),
        KeywordBucketExtractor('priority', PRIORITY_BUCKETS),
        KeywordBucketExtractor('status', STATUS_BUCKETS),
        KeywordBucketExtractor('component', COMPONENT_BUCKETS),
    ]


def _bug_list_chain() -> List[FieldExtractor]:
    return [
        KeywordBucketExtractor('priority', PRIORITY_BUCKETS),
        KeywordBucketExtractor('status', STATUS_BUCKETS),
        KeywordBucketExtractor('component', COMPONENT_BUCKETS),
        FlagExtractor('assigned_to_me', ('assigned to me', 'my assigned', 'mine'),
                      patterns=(r'my\s+(?:(?!teams?\b)\w+\s+){0,2}(?:bugs?|issues?)',)),
        FlagExtractor('created_by_me', ('created by me', 'i created', 'my reports', 'reported by me')),
        FlagExtractor('unassigned', ('unassigned', 'not assigned', 'nobody')),
        PatternExtractor('limit', (
            r'\b(?:show|give|get|list|find|display)\s+(?:me\s+)?(?:the\s+)?(?:first\s+|top\s+|last\s+|latest\s+)?(\d+)\b',
            r'\btop\s+(\d+)\b',
            r'\blimit\s+(?:to\s+)?(\d+)\b',
        ), transform=int),
        KeywordBucketExtractor('sort', SORT_BUCKETS),
    ]


def _bug_update_chain() -> List[FieldExtractor]:
    return [
        KeywordBucketExtractor('status', STATUS_BUCKETS),
        KeywordBucketExtractor('priority', PRIORITY_BUCKETS),
    ]


def _team_create_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('team_name', (
            r'(?:team|group)\s+(?:called|named)?\s*["\']([^"\']+)["\']',
            r'(?:create|add|new|make|start|build)\s+(?:a\s+)?(?:team|group)\s+["\']([^"\']+)["\']',
            r'(?:team|group)\s+(?:called|named)\s+(\w[\w .&-]*?)(?:\s+(?:for|with|to)\b|[.,]|$)',
            r'(?:team|group)\s+for\s+(.+?)(?:[.,]|$)',
            r'(?:create|add|new|make|start|build)\s+(?:a\s+)?(?:team|group)\s+(?!called\b|named\b|for\b)(\w[\w .&-]*?)(?:\s+(?:for|with)\b|[.,]|$)',
        )),
        PatternExtractor('description', DESCRIPTION_PATTERNS),
    ]


def _team_member_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('member_identifier', (
            EMAIL_PATTERN,
            r'\badd\s+(?!member\b|user\b|a\b|the\b)([A-Za-z][\w.-]*)\s+(?:to|into)\b',
            r'\b(?:member|user)\s+([A-Za-z][\w.-]*)\s+(?:to|into)\b',
            r'\binvite\s+(?!member\b|user\b)([A-Za-z][\w.-]*)',
        )),
        PatternExtractor('role', (
            r'\bas\s+(?:an?\s+)?(admin|member|owner|manager|developer|tester|viewer|designer)\b',
        ), transform=str.lower),
    ]


def _people_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('role', (
            r'\b(admin|developer|manager|tester|designer)s?\b',
        ), transform=str.lower),
        PatternExtractor('search_term', (
            r'\b(?:named|called)\s+(.+?)\s*$',
        )),
    ]


def _comment_add_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('content', (
            r':\s*(.+)$',
            r'(?<!\w)["\']([^"\']+)["\'](?!\w)',
            r'\b(?:saying|that says|with text)\s+(.+)$',
        )),
    ]


def _file_attach_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('file_name', (
            r'(?<!\w)["\']([^"\']+\.[A-Za-z0-9]{1,5})["\'](?!\w)',
            r'\b([\w-]+\.[A-Za-z][A-Za-z0-9]{0,4})\b',
        )),
    ]


def _search_chain() -> List[FieldExtractor]:
    return [
        PatternExtractor('search_term', (
            r'(?<!\w)["\']([^"\']+)["\'](?!\w)',
            r'\b(?:search|find|look|locate)\s+(?:for\s+)?(?:(?:all|any|the)\s+)?'
            r'(?:bugs?|issues?|teams?|users?|people|comments?|files?)?\s*'
            r'(?:about|for|with|named|called|matching|mentioning)?\s*(.+?)\s*$',
            r'\bwhere\s+is\s+(.+?)\s*$',
        )),
    ]


FAMILY_CHAINS: Dict[str, Callable[[], List[FieldExtractor]]] = {
    'bug_create': _bug_create_chain,
    'bug_list': _bug_list_chain,
    'bug_update': _bug_update_chain,
    'team_create': _team_create_chain,
    'team_member': _team_member_chain,
    'people': _people_chain,
    'comment_add': _comment_add_chain,
    'file_attach': _file_attach_chain,
    'search': _search_chain,
}

INTENT_FAMILIES: Dict[str, Tuple[str, ...]] = {
    'bug_create': ('bug_create',),
    'bug_list': ('bug_list',),
    'my_bugs': ('bug_list',),
    'priority_bugs': ('bug_list',),
    'bug_status_open': ('bug_list',),
    'bug_status_closed': ('bug_list',),
    'bug_status_progress': ('bug_list',),
    'bug_status_resolved': ('bug_list',),
    'bug_priority_high': ('bug_list',),
    'bug_priority_critical': ('bug_list',),
    'bug_priority_medium': ('bug_list',),
    'bug_priority_low': ('bug_list',),
    'general_query': ('bug_list',),
    'bug_update': ('bug_update',),
    'team_create': ('team_create',),
    'team_add_member': ('team_member',),
    'people_list': ('people',),
    'user_search': ('people', 'search'),
    'comment_add': ('comment_add',),
    'file_attach': ('file_attach',),
    'search': ('search',),
    'bug_search': ('search',),
    'team_search': ('search',),
    'comment_search': ('search',),
    'file_search': ('search',),
}


class EntityExtractor:
    """
    Extract entities from natural language

    Produces a flat entity map. Missing keys mean "not provided"; nothing
    is ever stored as None.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.quoted = re.compile(QUOTED_PATTERN)

        # Generic extractors, applied to every message
        self.generic: List[FieldExtractor] = [
            ListExtractor('names', QUOTED_PATTERN, group=2),
            ListExtractor('emails', EMAIL_PATTERN),
            ListExtractor('numbers', r'\b(\d+)\b', transform=int),
        ]

        self.chains: Dict[str, List[FieldExtractor]] = {
            family: build() for family, build in FAMILY_CHAINS.items()
        }

    def chain_for(self, intent: str) -> List[FieldExtractor]:
        """Ordered extractors that run for an intent"""
        chain: List[FieldExtractor] = list(self.generic)
        for family in INTENT_FAMILIES.get(intent, ()):
            chain.extend(self.chains[family])
        return chain

    def extract(self, message: str, intent: str) -> Dict[str, Any]:
        """
        Extract all entities from message

        Args:
            message: User message to extract from
            intent: Classified intent, selects the extractor chain

        Returns:
            Entity map
        """
        entities: Dict[str, Any] = {}
        unquoted = self.quoted.sub(" ", message)

        for extractor in self.chain_for(intent):
            if extractor.field in entities:
                continue
            value = extractor.extract(message if extractor.reads_quoted else unquoted)
            if value is not None:
                entities[extractor.field] = value

        logger.debug(f"[ENTITY] {intent}: {entities}")
        if self.verbose:
            print(f"[ENTITY] Extracted {len(entities)} entities: {sorted(entities)}")

        return entities
