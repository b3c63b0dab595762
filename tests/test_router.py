import pytest

from core.parallel_executor import ParallelExecutor
from orchestration.actions import ROUTE_ALIASES, ROUTES, DispatchRequest
from orchestration.router import IntentRouter

# Entities that satisfy each route against the demo workspace
SAMPLE_ENTITIES = {
    'greeting': {},
    'help': {},
    'goodbye': {},
    'general_query': {},
    'bug_list': {},
    'bug_create': {'title': 'Checkout button misaligned', 'priority': 'low'},
    'bug_search': {'search_term': 'login'},
    'bug_details': {'bug_id': '1'},
    'bug_assign': {'bug_id': '2', 'assigned_user_id': 'u2'},
    'bug_update': {'bug_id': '1', 'status': 'resolved'},
    'bug_delete': {'bug_id': '2'},
    'bug_stats': {},
    'bug_status_open': {},
    'bug_status_closed': {},
    'bug_status_progress': {},
    'bug_status_resolved': {},
    'bug_priority_high': {},
    'bug_priority_critical': {},
    'bug_priority_medium': {},
    'bug_priority_low': {},
    'priority_bugs': {},
    'my_bugs': {},
    'team_list': {},
    'team_create': {'team_name': 'Falcons'},
    'team_details': {'team_id': 't1'},
    'team_add_member': {'team_id': 't1', 'member_identifier': 'marco@example.com'},
    'team_search': {'search_term': 'core'},
    'team_stats': {},
    'people_list': {},
    'user_profile': {},
    'user_search': {'search_term': 'john'},
    'comment_list': {'bug_id': '1'},
    'comment_add': {'bug_id': '1', 'content': 'Looking into it'},
    'comment_search': {'search_term': 'timeout'},
    'file_list': {'bug_id': '1'},
    'file_attach': {'bug_id': '1', 'file_name': 'console.log'},
    'file_search': {'search_term': 'log'},
    'search': {'search_term': 'login'},
    'dashboard': {},
    'analytics': {},
}


@pytest.fixture
def router():
    return IntentRouter()


@pytest.fixture
def make_request(collaborators, retry_manager, alice):
    def make(entities=None, user=None, profile=None):
        return DispatchRequest(
            user_id=(user or alice)['id'],
            entities=dict(entities or {}),
            collaborators=collaborators,
            retry_manager=retry_manager,
            parallel=ParallelExecutor(),
            user_profile=profile,
        )
    return make


def test_every_route_has_a_sample():
    assert set(SAMPLE_ENTITIES) == set(ROUTES)
    assert len(ROUTES) == 40


def test_aliases_point_at_routes():
    assert set(ROUTE_ALIASES.values()) <= set(ROUTES)


@pytest.mark.parametrize("name", sorted(SAMPLE_ENTITIES))
async def test_route_succeeds(router, make_request, name):
    result = await router.dispatch(name, make_request(SAMPLE_ENTITIES[name]))
    assert result['success'] is True, result
    assert result['message']


@pytest.mark.parametrize("name", sorted(n for n, r in ROUTES.items() if r.required))
async def test_missing_entities_ask_for_clarification(router, make_request, backend, name):
    loner = backend.find_user('marco@example.com')
    result = await router.dispatch(name, make_request({}, user=loner))
    assert result['success'] is False
    assert result['error_kind'] == 'missing_entity'
    assert result['missing_entities'] == list(ROUTES[name].required)
    assert result['suggestions'] == list(ROUTES[name].examples)


async def test_bug_create_clarification_wording(router, make_request):
    result = await router.dispatch('bug_create', make_request({}))
    assert result['message'] == "Please provide a bug title to create a new bug."
    assert 'Try: "Create a bug for login issue"' in result['suggestions']


async def test_unresolved_person_is_named(router, make_request):
    result = await router.dispatch('bug_assign', make_request({'bug_id': '1', 'person_reference': 'Zed'}))
    assert result['missing_entities'] == ['assigned_user_id']
    assert '"Zed"' in result['message']


async def test_unknown_route_suggests_by_keyword(router, make_request):
    result = await router.dispatch('weather_report', make_request(), text="is the bug tracker sunny")
    assert result['error_kind'] == 'classification_ambiguity'
    assert 'Show all bugs' in result['suggestions']


async def test_collaborator_exception_becomes_failure(router, make_request, collaborators):
    async def denied(user_id):
        raise PermissionError("access denied")

    collaborators.bugs.stats = denied
    result = await router.dispatch('bug_stats', make_request())
    assert result['success'] is False
    assert result['error_kind'] == 'collaborator_failure'
    assert result['error'] == 'permission'
    assert result['can_retry'] is False
    assert 'access denied' not in result['message']


class TestResolve:
    def test_alias(self, router):
        assert router.resolve('assign_bug', {}) == 'bug_assign'

    @pytest.mark.parametrize("intent, entities, expected", [
        ('bug_list', {'bug_id': '3'}, 'bug_details'),
        ('team_list', {'team_id': 't1'}, 'team_details'),
        ('bug_list', {}, 'bug_list'),
        ('bug_list', {'status': 'open'}, 'bug_status_open'),
        ('bug_list', {'priority': 'critical', 'limit': 5}, 'bug_priority_critical'),
        ('bug_list', {'status': 'open', 'assigned_to_me': True}, 'bug_list'),
        ('bug_list', {'time_filter': {'period': 'today'}}, 'bug_list'),
    ])
    def test_refinements(self, router, intent, entities, expected):
        assert router.resolve(intent, entities) == expected

    @pytest.mark.parametrize("text, expected", [
        ("how many are still open", 'bug_stats'),
        ("what about the issues", 'bug_list'),
        ("which teams exist", 'team_list'),
        ("who works here", 'people_list'),
        ("what's the weather", 'general_query'),
    ])
    def test_general_query_delegation(self, router, text, expected):
        assert router.resolve('general_query', {}, text) == expected

    def test_consumes(self, router):
        assert router.consumes('bug_assign') == {'bug_id', 'assigned_user_id'}
        assert router.consumes('nope') == set()


class TestBugCreate:
    async def test_single_team_is_used(self, router, make_request, backend):
        result = await router.dispatch('bug_create', make_request({'title': 'Crash on save'}))
        bug = result['data']['bug']
        assert bug['team_id'] == 't1'
        assert bug['priority'] == 'medium'
        assert bug['status'] == 'open'

    async def test_several_teams_need_selection(self, router, make_request, backend, alice):
        backend.add_team('Mobile', alice['id'])
        result = await router.dispatch('bug_create', make_request({'title': 'Crash on save'}))
        assert result['success'] is False
        assert result['needs_selection'] is True
        assert [o['name'] for o in result['options']] == ['Core Platform', 'Mobile']

    async def test_no_team(self, router, make_request, backend):
        loner = backend.find_user('marco@example.com')
        result = await router.dispatch('bug_create', make_request({'title': 'Crash'}, user=loner))
        assert result['needs_team'] is True

    async def test_assignee_is_mentioned(self, router, make_request, john):
        result = await router.dispatch('bug_create', make_request({
            'title': 'Crash on save',
            'assigned_user_id': john['id'],
            'assigned_user_name': john['name'],
        }))
        assert result['data']['bug']['assignees'] == ['John Smith']
        assert result['message'].endswith("Assigned to John Smith.")


async def test_team_details_defaults_to_only_team(router, make_request):
    req = make_request()
    result = await router.dispatch('team_details', req)
    assert result['data']['team']['name'] == 'Core Platform'
    assert result['message'].endswith("(using your only team)")
    assert req.entities['team_defaulted'] is True


async def test_empty_bug_list_message(router, make_request):
    result = await router.dispatch('bug_list', make_request({'status': 'closed'}))
    assert result['success'] is True
    assert result['message'] == "No bugs match that right now."


async def test_greeting_uses_profile_name(router, make_request):
    result = await router.dispatch('greeting', make_request(profile={'name': 'Alice'}))
    assert result['message'].startswith("Hello Alice!")


class TestAggregates:
    async def test_search_counts_every_section(self, router, make_request):
        result = await router.dispatch('search', make_request({'search_term': 'login'}))
        assert result['data']['count'] == 1
        assert len(result['data']['bugs']) == 1
        assert 'failed_sections' not in result['data']

    async def test_partial_failure_is_reported(self, router, make_request, collaborators):
        async def down(user_id, text):
            raise ConnectionError("service unavailable")

        collaborators.teams.search = down
        result = await router.dispatch('search', make_request({'search_term': 'login'}))
        assert result['success'] is True
        assert result['data']['failed_sections'] == ['teams']
        assert result['data']['teams'] is None
        assert 'teams' in result['message']

    async def test_total_failure(self, router, make_request, collaborators):
        async def down(*args):
            raise ConnectionError("service unavailable")

        collaborators.bugs.stats = down
        collaborators.teams.list_for_user = down
        collaborators.bugs.list = down
        result = await router.dispatch('dashboard', make_request())
        assert result['success'] is False
        assert result['error_kind'] == 'collaborator_failure'

    async def test_dashboard_sections(self, router, make_request):
        result = await router.dispatch('dashboard', make_request())
        assert set(result['data']) == {'stats', 'teams', 'assigned_bugs'}
        assert result['data']['stats']['total'] == 3
