import pytest

from intelligence.base_types import ParsedQuery, QueryType
from intelligence.entity_enhancer import EntityEnhancer
from intelligence.entity_extractor import EntityExtractor
from intelligence.intent_classifier import IntentClassifier
from intelligence.pipeline import (
    DependencyResolver,
    QueryAnalyzer,
    QueryComplexityClassifier,
    QueryDecomposer,
    build_filters,
    mask_quoted,
)


@pytest.fixture(scope="module")
def complexity():
    return QueryComplexityClassifier()


@pytest.mark.parametrize("message, expected", [
    ("show all bugs", QueryType.SIMPLE),
    ("how many bugs are open", QueryType.ANALYTICS),
    ("compare my bugs vs john's bugs", QueryType.COMPARISON),
    ("teams with more than 5 bugs", QueryType.COMPARISON),
    ("show bugs and teams", QueryType.COMPOSITE),
    ("create a bug then assign a user", QueryType.COMPOSITE),
    ("assign that bug to John", QueryType.DEPENDENT),
    ("close it", QueryType.DEPENDENT),
    ("create bug 'login and signup'", QueryType.SIMPLE),
])
def test_complexity(complexity, message, expected):
    assert complexity.classify(message) == expected


def test_analytics_outranks_composite(complexity):
    assert complexity.classify("count bugs and teams") == QueryType.ANALYTICS


def test_mask_quoted_keeps_length():
    text = "create bug 'a and b' now"
    masked = mask_quoted(text)
    assert len(masked) == len(text)
    assert 'and' not in masked


class TestDecomposer:
    @pytest.fixture
    def decomposer(self, complexity):
        return QueryDecomposer(complexity)

    def test_noun_fragment_borrows_verb(self, decomposer):
        assert decomposer.split("show bugs and teams") == ['show bugs', 'show teams']

    def test_bare_fragment_merges_backwards(self, decomposer):
        assert decomposer.split("find bugs about login and signup") == ['find bugs about login and signup']

    def test_quoted_conjunctions_do_not_split(self, decomposer):
        assert decomposer.split("create team 'Alpha and Beta' then show bugs") == [
            "create team 'Alpha and Beta'", 'show bugs'
        ]

    def test_quoted_span_before_conjunction_is_kept(self, decomposer):
        assert decomposer.split("create bug 'Login fails' and show bugs") == [
            "create bug 'Login fails'", 'show bugs'
        ]

    def test_semicolon_split(self, decomposer):
        assert decomposer.split("create team \"Falcons\"; show bugs") == ['create team "Falcons"', 'show bugs']

    def test_dependent_segments(self, decomposer):
        subs = decomposer.decompose("show bugs and then assign that bug to John")
        assert [s.text for s in subs] == ['show bugs', 'assign that bug to John']
        assert [s.depends_on_previous for s in subs] == [False, True]
        assert subs[1].query_type == QueryType.DEPENDENT

    def test_first_segment_never_depends(self, decomposer):
        subs = decomposer.decompose("close that bug and show teams")
        assert subs[0].depends_on_previous is False


class TestDependencyResolver:
    @pytest.fixture
    def resolver(self):
        return DependencyResolver()

    def parsed(self, resolver, text, entities=None):
        return ParsedQuery(text=text, entities=entities or {}, dependencies=resolver.detect(text))

    def test_pronoun_fills_bug_from_recent_bugs(self, resolver, context):
        context.push_bug({'id': '4'})
        entities, missing = resolver.resolve(self.parsed(resolver, "close it"), {'bug_id', 'status'}, context)
        assert entities['bug_id'] == '4'
        assert missing == []

    def test_pronoun_without_context_is_reported(self, resolver, context):
        _, missing = resolver.resolve(self.parsed(resolver, "close it"), {'bug_id', 'status'}, context)
        assert [(m.fills, m.context_key) for m in missing] == [('bug_id', 'recent_bugs')]

    def test_reference_ignored_when_route_does_not_consume_it(self, resolver, context):
        entities, missing = resolver.resolve(self.parsed(resolver, "close it"), {'team_name'}, context)
        assert 'bug_id' not in entities
        assert missing == []

    def test_existing_entity_is_kept(self, resolver, context):
        context.push_bug({'id': '4'})
        parsed = self.parsed(resolver, "close that bug", {'bug_id': '9'})
        entities, _ = resolver.resolve(parsed, {'bug_id'}, context)
        assert entities['bug_id'] == '9'

    def test_result_set_reference(self, resolver, context):
        context.last_query = {'action_result': {'data': {'bugs': [{'id': '1'}, {'id': '2'}]}}}
        parsed = self.parsed(resolver, "show those")
        entities, missing = resolver.resolve(parsed, {'previous_bug_ids'}, context)
        assert entities['previous_bug_ids'] == ['1', '2']
        assert missing == []

    def test_team_reference(self, resolver, context):
        context.current_team = {'id': 't3', 'name': 'Falcons'}
        entities, _ = resolver.resolve(self.parsed(resolver, "add Marco to this team"), {'team_id'}, context)
        assert entities['team_id'] == 't3'


def test_build_filters():
    entities = {
        'status': 'open',
        'assigned_user_id': 'u2',
        'time_filter': {'date': 'since'},
        'previous_bug_ids': ['1'],
        'title': 'ignored',
    }
    assert build_filters(entities) == {
        'status': 'open', 'assigned_to': 'u2', 'start_date': 'since', 'bug_ids': ['1']
    }


def test_build_filters_prefers_assigned_to_me():
    assert build_filters({'assigned_to_me': True, 'assigned_user_id': 'u1'}) == {'assigned_to_me': True}


class TestQueryAnalyzer:
    @pytest.fixture
    def analyzer(self, collaborators, retry_manager):
        return QueryAnalyzer(
            classifier=IntentClassifier(),
            extractor=EntityExtractor(),
            enhancer=EntityEnhancer(collaborators, retry_manager),
        )

    async def test_simple(self, analyzer, context, alice):
        parsed = await analyzer.analyze("show all bugs", alice['id'], context)
        assert parsed.intent == 'bug_list'
        assert parsed.query_type == QueryType.SIMPLE
        assert parsed.sub_queries == []
        assert parsed.actions == ['show']

    async def test_composite_fills_sub_queries(self, analyzer, context, alice):
        parsed = await analyzer.analyze("show bugs and teams", alice['id'], context)
        assert parsed.is_composite
        assert [s.text for s in parsed.sub_queries] == ['show bugs', 'show teams']

    async def test_filters_follow_entities(self, analyzer, context, alice):
        parsed = await analyzer.analyze("show my open bugs", alice['id'], context)
        assert parsed.filters == {'status': 'open', 'assigned_to_me': True}

    async def test_dependent_flag(self, analyzer, context, alice):
        parsed = await analyzer.analyze("assign that bug to John", alice['id'], context)
        assert parsed.is_dependent_query
        assert [d.entity for d in parsed.dependencies] == ['bug']
