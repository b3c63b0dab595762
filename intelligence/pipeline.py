# Intelligence Pipeline - Query Complexity, Decomposition and Dependency Resolution

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from logger import get_logger
from .base_types import Comparison, ContextDependency, ParsedQuery, QueryType, SubQuery
from .context import ConversationContext
from .entity_enhancer import EntityEnhancer, extract_comparisons
from .entity_extractor import QUOTED_PATTERN, EntityExtractor
from .intent_classifier import IntentClassifier
from .tokenizer import normalize, stem, tokenize

logger = get_logger(__name__)

ANALYTICS_KEYWORDS = (
    'how many', 'number of', 'count', 'total', 'sum', 'average', 'statistics', 'stats',
    'analytics', 'metrics', 'insights', 'trends',
)
COMPARISON_KEYWORDS = ('versus', 'vs', 'compare', 'compared to')
CONDITIONAL_KEYWORDS = ('if', 'when', 'where', 'that', 'which', 'those')

CONJUNCTIONS = (
    'and then', 'and also', 'as well as', 'along with', 'together with', 'combined with',
    'and', 'then', 'also', 'plus',
)

ACTION_VERBS = (
    'create', 'show', 'list', 'update', 'delete', 'add', 'remove', 'get', 'find', 'count',
    'assign', 'close', 'resolve', 'attach',
)
ENTITY_NOUNS = ('bug', 'team', 'user', 'comment', 'file', 'issue', 'project', 'member')

ACTION_STEMS = {stem(verb): verb for verb in ACTION_VERBS}
NOUN_STEMS = {stem(noun) for noun in ENTITY_NOUNS}


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern:
    alternatives = '|'.join(r'\s+'.join(re.escape(w) for w in k.split()) for k in keywords)
    return re.compile(r'\b(?:' + alternatives + r')\b', re.IGNORECASE)


_QUOTED = re.compile(QUOTED_PATTERN)
_CONJUNCTION_SPLIT = re.compile(
    r'(?:;|' + _keyword_pattern(CONJUNCTIONS).pattern + r')', re.IGNORECASE
)


def mask_quoted(text: str) -> str:
    """Blank quoted spans, keeping offsets, so keyword scans skip them."""
    return _QUOTED.sub(lambda m: ' ' * len(m.group(0)), text)


def build_filters(entities: Dict[str, Any]) -> Dict[str, Any]:
    """Collaborator list filters derived from an entity map."""
    filters: Dict[str, Any] = {}
    for key in ('status', 'priority', 'component', 'team_id', 'assigned_to_me',
                'created_by_me', 'unassigned'):
        if key in entities:
            filters[key] = entities[key]
    if 'assigned_user_id' in entities and not entities.get('assigned_to_me'):
        filters['assigned_to'] = entities['assigned_user_id']
    if 'time_filter' in entities:
        filters['start_date'] = entities['time_filter']['date']
    if 'previous_bug_ids' in entities:
        filters['bug_ids'] = list(entities['previous_bug_ids'])
    return filters


class QueryComplexityClassifier:
    """
    Flags the structure of a message.

    Precedence, first match wins:
        analytics > comparison > composite > dependent > simple
    """

    def __init__(self):
        self.analytics = _keyword_pattern(ANALYTICS_KEYWORDS)
        self.comparison = _keyword_pattern(COMPARISON_KEYWORDS)
        self.conjunction = re.compile(r';|' + _keyword_pattern(CONJUNCTIONS).pattern, re.IGNORECASE)
        self.conditional = _keyword_pattern(CONDITIONAL_KEYWORDS)

    def action_verbs(self, text: str) -> List[str]:
        """Distinct action verbs in order of appearance"""
        verbs: List[str] = []
        for token in tokenize(mask_quoted(text)):
            verb = ACTION_STEMS.get(stem(token))
            if verb and verb not in verbs:
                verbs.append(verb)
        return verbs

    def entity_nouns(self, text: str) -> List[str]:
        nouns: List[str] = []
        for token in normalize(mask_quoted(text)):
            if token in NOUN_STEMS and token not in nouns:
                nouns.append(token)
        return nouns

    def classify(self, text: str, comparisons: Optional[Sequence[Comparison]] = None) -> QueryType:
        masked = mask_quoted(text)
        if comparisons is None:
            comparisons = extract_comparisons(masked)

        if self.analytics.search(masked):
            return QueryType.ANALYTICS
        if comparisons or self.comparison.search(masked):
            return QueryType.COMPARISON
        if (self.conjunction.search(masked)
                or len(self.action_verbs(masked)) > 1
                or len(self.entity_nouns(masked)) > 1):
            return QueryType.COMPOSITE
        if DependencyResolver.has_back_reference(masked) or self.conditional.search(masked):
            return QueryType.DEPENDENT
        return QueryType.SIMPLE


class QueryDecomposer:
    """
    Splits a composite message into ordered sub-queries.

    Splits happen on top-level conjunctions only; quoted text is never
    split. A fragment with neither an action verb nor a domain noun
    ("login and signup") stays with the fragment before it, and a
    fragment with a noun but no verb ("show bugs and teams") borrows
    the verb of the fragment before it.
    """

    def __init__(self, complexity: Optional[QueryComplexityClassifier] = None, verbose: bool = False):
        self.complexity = complexity or QueryComplexityClassifier()
        self.verbose = verbose

    def split(self, text: str) -> List[str]:
        masked = mask_quoted(text)
        pieces: List[Tuple[str, str]] = []
        last = 0
        # Cut at the conjunction only, so quoted spans stay in their fragment
        for match in _CONJUNCTION_SPLIT.finditer(masked):
            pieces.append((text[last:match.start()].strip(), match.group(0)))
            last = match.end()
        pieces.append((text[last:].strip(), ''))

        segments: List[str] = []
        joiner = ''
        for fragment, separator in pieces:
            if not fragment:
                joiner = separator
                continue
            verbs = self.complexity.action_verbs(fragment)
            nouns = self.complexity.entity_nouns(fragment)
            if segments and not verbs and not nouns:
                glue = f"{joiner} " if joiner == ';' else f" {joiner} "
                segments[-1] = segments[-1] + glue + fragment
            elif segments and not verbs:
                previous_verbs = self.complexity.action_verbs(segments[-1])
                segments.append(f"{previous_verbs[0]} {fragment}" if previous_verbs else fragment)
            else:
                segments.append(fragment)
            joiner = separator
        return segments

    def decompose(self, text: str) -> List[SubQuery]:
        sub_queries = []
        for index, segment in enumerate(self.split(text)):
            query_type = self.complexity.classify(segment)
            sub_queries.append(SubQuery(
                index=index,
                text=segment,
                query_type=query_type,
                depends_on_previous=index > 0 and query_type == QueryType.DEPENDENT
            ))

        if self.verbose:
            print(f"[DECOMPOSITION] {len(sub_queries)} segment(s)")
            for sub in sub_queries:
                print(f"  - {sub.index}: {sub.text!r} ({sub.query_type.value})")

        return sub_queries


@dataclass(frozen=True)
class BackReference:
    """A phrase that points at something from an earlier turn"""
    entity: str
    pattern: re.Pattern
    context_key: Optional[str]
    fills: Optional[str]


BACK_REFERENCES = (
    BackReference(
        'bug',
        re.compile(r'\b(?:that|this|the|previous|last)\s+(?:bug|issue)\b(?!\s+(?:list|report|tracker))',
                   re.IGNORECASE),
        'recent_bugs', 'bug_id'),
    BackReference(
        'team',
        re.compile(r'\b(?:this|that|my|our|current|the)\s+team\b', re.IGNORECASE),
        'current_team', 'team_id'),
    # context_key and fills depend on what the route consumes
    BackReference(
        'previous_result',
        re.compile(r'\b(?:it|them)\b', re.IGNORECASE),
        None, None),
    BackReference(
        'previous_results',
        _keyword_pattern(('those', 'these', 'from that', 'based on', 'using the', 'with those',
                          'for each', 'in those', 'of the above', 'from the previous')),
        'last_query', 'previous_bug_ids'),
)

PRONOUN_TARGETS = (('bug_id', 'recent_bugs'), ('team_id', 'current_team'))


class DependencyResolver:
    """
    Resolves back-references against conversation context.

    A reference only counts when the route consumes the entity it fills
    and that entity is still missing after enhancement. References that
    cannot be resolved are reported, never guessed.
    """

    @staticmethod
    def has_back_reference(text: str) -> bool:
        return any(ref.pattern.search(text) for ref in BACK_REFERENCES)

    def detect(self, text: str) -> List[ContextDependency]:
        masked = mask_quoted(text)
        dependencies = []
        for ref in BACK_REFERENCES:
            match = ref.pattern.search(masked)
            if match:
                dependencies.append(ContextDependency(
                    entity=ref.entity,
                    context_key=ref.context_key or 'recent_bugs',
                    fills=ref.fills,
                    phrase=match.group(0)
                ))
        return dependencies

    def resolve(
        self,
        parsed: ParsedQuery,
        consumes: Iterable[str],
        context: ConversationContext
    ) -> Tuple[Dict[str, Any], List[ContextDependency]]:
        """
        Fill referenced entities from context.

        Returns:
            (entities with references filled, unresolved dependencies)
        """
        consumes = set(consumes)
        entities = dict(parsed.entities)
        missing: List[ContextDependency] = []

        for dependency in parsed.dependencies:
            fills, context_key = dependency.fills, dependency.context_key
            if dependency.entity == 'previous_result':
                target = next(((f, k) for f, k in PRONOUN_TARGETS if f in consumes), None)
                if not target:
                    continue
                fills, context_key = target

            if fills not in consumes or fills in entities:
                continue

            value = self._lookup(context, context_key)
            if value:
                entities[fills] = value
                logger.debug(f"[DEPENDENCY] '{dependency.phrase}' -> {fills}={value}")
            else:
                missing.append(ContextDependency(
                    entity=dependency.entity,
                    context_key=context_key,
                    fills=fills,
                    phrase=dependency.phrase
                ))

        return entities, missing

    @staticmethod
    def _lookup(context: ConversationContext, context_key: str) -> Any:
        if context_key == 'recent_bugs':
            return context.recent_bugs[0].get('id') if context.recent_bugs else None
        if context_key == 'current_team':
            return (context.current_team or {}).get('id')
        if context_key == 'last_query':
            last = context.last_query or {}
            data = (last.get('action_result') or {}).get('data') or {}
            return [bug['id'] for bug in data.get('bugs') or [] if 'id' in bug]
        return None


class QueryAnalyzer:
    """
    Runs one message through the analysis stages:
        tokenize -> classify -> extract -> enhance -> complexity -> decompose
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        extractor: EntityExtractor,
        enhancer: EntityEnhancer,
        complexity: Optional[QueryComplexityClassifier] = None,
        decomposer: Optional[QueryDecomposer] = None,
        resolver: Optional[DependencyResolver] = None,
        verbose: bool = False
    ):
        self.classifier = classifier
        self.extractor = extractor
        self.enhancer = enhancer
        self.complexity = complexity or QueryComplexityClassifier()
        self.decomposer = decomposer or QueryDecomposer(self.complexity, verbose=verbose)
        self.resolver = resolver or DependencyResolver()
        self.verbose = verbose

    async def analyze(self, text: str, user_id: str, context: ConversationContext) -> ParsedQuery:
        tokens = normalize(text)
        match = self.classifier.classify(text, tokens)

        entities = self.extractor.extract(text, match.intent)
        entities = await self.enhancer.enhance(text, match.intent, entities, user_id, context)

        comparisons = extract_comparisons(mask_quoted(text))
        time_range = self.enhancer.time_range(text)
        query_type = self.complexity.classify(text, comparisons)

        parsed = ParsedQuery(
            text=text,
            tokens=tokens,
            intent=match.intent,
            confidence=match.confidence,
            sentiment=match.sentiment,
            entities=entities,
            actions=self.complexity.action_verbs(text),
            filters=build_filters(entities),
            time_ranges=[time_range] if time_range else [],
            comparisons=comparisons,
            query_type=query_type,
            dependencies=self.resolver.detect(text),
        )

        if parsed.is_composite:
            parsed.sub_queries = self.decomposer.decompose(text)

        logger.debug(f"[PIPELINE] {parsed}")
        if self.verbose:
            print(f"[PIPELINE] {parsed}")

        return parsed
