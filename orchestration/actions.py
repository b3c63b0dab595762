"""
Intent Dispatch Table

Maps every canonical intent to the collaborator call that serves it:
- IntentRoute: required/optional entities, the call, a response builder
  and the example phrasings used when something is missing
- ROUTES: the table itself, built once at import and read-only afterwards
- ROUTE_ALIASES / INTENT_REFINEMENTS / GENERAL_QUERY_RULES: how an
  incoming intent name becomes a route name

Author: AI System
Version: 2.0
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from connectors.base_operations import ActionResult, Collaborators
from core.parallel_executor import ParallelExecutor, ReadTask
from core.resilience import RetryManager
from error_handler import FailureKind, failure_result
from intelligence.base_types import ParsedQuery, QueryType
from intelligence.context import ConversationContext
from intelligence.intent_catalog import response_for
from intelligence.pipeline import build_filters
from logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# DISPATCH MODELS
# ============================================================================

@dataclass
class DispatchRequest:
    """Everything a route needs to serve one (sub-)query"""
    user_id: str
    entities: Dict[str, Any]
    collaborators: Collaborators
    retry_manager: RetryManager
    parallel: ParallelExecutor = field(default_factory=ParallelExecutor)
    parsed: Optional[ParsedQuery] = None
    context: Optional[ConversationContext] = None
    user_profile: Optional[Dict[str, Any]] = None

    @property
    def filters(self) -> Dict[str, Any]:
        return build_filters(self.entities)

    async def invoke(self, operation: str, fn: Callable[..., Awaitable[ActionResult]], *args: Any,
                     read_only: bool = False) -> ActionResult:
        """Call a collaborator under the timeout; only reads are retried."""
        return await self.retry_manager.execute(operation, lambda: fn(*args), idempotent=read_only)

    async def gather(self, reads: Sequence[Tuple[str, str, Callable[..., Awaitable[ActionResult]], tuple]]
                     ) -> List[ReadTask]:
        """Run (key, operation, fn, args) reads concurrently, in initiation order."""
        tasks = [
            ReadTask(key=key, call=lambda op=op, fn=fn, args=args: self.invoke(op, fn, *args, read_only=True))
            for key, op, fn, args in reads
        ]
        return await self.parallel.gather_ordered(tasks)


RouteCall = Callable[[DispatchRequest], Awaitable[ActionResult]]
ResponseBuilder = Callable[[DispatchRequest, ActionResult], ActionResult]


@dataclass(frozen=True)
class IntentRoute:
    """One dispatch-table entry"""
    name: str
    call: RouteCall
    label: str
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()
    build: Optional[ResponseBuilder] = None
    examples: Tuple[str, ...] = ()
    missing_message: str = ''
    idempotent: bool = True
    default_team: bool = False

    @property
    def consumes(self) -> set:
        return set(self.required) | set(self.optional)


# ============================================================================
# ROUTE CALLS
# ============================================================================

BUG_LIST_ENTITIES = (
    'status', 'priority', 'component', 'team_id', 'assigned_to_me', 'created_by_me',
    'unassigned', 'assigned_user_id', 'time_filter', 'limit', 'sort', 'previous_bug_ids',
)

CAPABILITIES = (
    "Bugs: list, create, assign, update, delete and search them",
    "Teams: create teams, add members and see team stats",
    "People: find teammates and view profiles",
    "Comments and files on any bug",
    "Dashboards and analytics",
)


def _message_route(intent: str) -> RouteCall:
    async def call(req: DispatchRequest) -> ActionResult:
        text = response_for(intent)
        name = (req.user_profile or {}).get('name')
        if intent == 'greeting' and name:
            text = text.replace('Hello!', f'Hello {name}!', 1)
        return {'success': True, 'message': text}
    return call


async def _general_query(req: DispatchRequest) -> ActionResult:
    return {
        'success': True,
        'message': response_for('general_query'),
        'data': {'capabilities': list(CAPABILITIES)},
    }


def _wants_analytics(req: DispatchRequest) -> bool:
    return bool(req.parsed and req.parsed.query_type == QueryType.ANALYTICS)


def _list_bugs(**fixed: Any) -> RouteCall:
    async def call(req: DispatchRequest) -> ActionResult:
        filters = req.filters
        filters.update(fixed.get('filters', {}))
        options: Dict[str, Any] = {'sort': req.entities.get('sort', fixed.get('sort', 'newest'))}
        if 'limit' in req.entities:
            options['limit'] = req.entities['limit']
        if _wants_analytics(req):
            options['include_analytics'] = True
        return await req.invoke('bugs.list', req.collaborators.bugs.list, req.user_id, filters, options,
                                read_only=True)
    return call


async def _user_teams(req: DispatchRequest) -> List[Dict[str, Any]]:
    result = await req.invoke('teams.list_for_user', req.collaborators.teams.list_for_user, req.user_id,
                              read_only=True)
    if not result.get('success'):
        return []
    return (result.get('data') or {}).get('teams') or []


async def _bug_create(req: DispatchRequest) -> ActionResult:
    e = req.entities
    data: Dict[str, Any] = {
        'title': e['title'],
        'priority': e.get('priority', 'medium'),
        'status': e.get('status', 'open'),
    }
    for key in ('description', 'component'):
        if key in e:
            data[key] = e[key]
    if 'assigned_user_id' in e:
        data['assigned_to'] = [e['assigned_user_id']]

    team_id = e.get('team_id')
    if team_id is None:
        teams = await _user_teams(req)
        if not teams:
            return failure_result(
                "You need to be part of a team before creating bugs.",
                FailureKind.MISSING_ENTITY,
                needs_team=True,
                suggestions=['Try: "Create team called Falcons"']
            )
        if len(teams) > 1:
            return failure_result(
                "Which team should this bug go to?",
                FailureKind.MISSING_ENTITY,
                needs_selection=True,
                options=[{'id': t['id'], 'name': t['name']} for t in teams],
                suggestions=[f"Create it in {t['name']}" for t in teams]
            )
        team_id = teams[0]['id']
    data['team_id'] = team_id

    return await req.invoke('bugs.create', req.collaborators.bugs.create, data, req.user_id)


async def _bug_search(req):
    return await req.invoke('bugs.search', req.collaborators.bugs.search, req.user_id,
                            req.entities['search_term'], read_only=True)


async def _bug_details(req):
    return await req.invoke('bugs.details', req.collaborators.bugs.details, req.user_id,
                            req.entities['bug_id'], read_only=True)


async def _bug_assign(req):
    return await req.invoke('bugs.assign', req.collaborators.bugs.assign, req.entities['bug_id'],
                            [req.entities['assigned_user_id']], req.user_id)


async def _bug_update(req):
    return await req.invoke('bugs.update_status', req.collaborators.bugs.update_status,
                            req.entities['bug_id'], req.entities['status'], req.user_id)


async def _bug_delete(req):
    return await req.invoke('bugs.delete', req.collaborators.bugs.delete, req.entities['bug_id'], req.user_id)


async def _bug_stats(req):
    return await req.invoke('bugs.stats', req.collaborators.bugs.stats, req.user_id, read_only=True)


async def _team_list(req):
    return await req.invoke('teams.list_for_user', req.collaborators.teams.list_for_user, req.user_id,
                            read_only=True)


async def _team_create(req):
    data = {'name': req.entities['team_name']}
    if 'description' in req.entities:
        data['description'] = req.entities['description']
    return await req.invoke('teams.create', req.collaborators.teams.create, data, req.user_id)


async def _team_details(req):
    return await req.invoke('teams.details', req.collaborators.teams.details, req.user_id,
                            req.entities['team_id'], read_only=True)


async def _team_add_member(req):
    e = req.entities
    return await req.invoke('teams.add_member', req.collaborators.teams.add_member, e['team_id'],
                            e['member_identifier'], e.get('role', 'member'), req.user_id)


async def _team_search(req):
    return await req.invoke('teams.search', req.collaborators.teams.search, req.user_id,
                            req.entities['search_term'], read_only=True)


async def _team_stats(req):
    return await req.invoke('teams.stats', req.collaborators.teams.stats, req.user_id, read_only=True)


async def _people_list(req):
    e = req.entities
    if 'team_id' in e:
        return await req.invoke('users.team_members', req.collaborators.users.team_members, req.user_id,
                                e['team_id'], read_only=True)
    filters = {'role': e['role']} if 'role' in e else {}
    return await req.invoke('users.search', req.collaborators.users.search, req.user_id,
                            e.get('search_term', ''), filters, read_only=True)


async def _user_profile(req):
    target = req.entities.get('assigned_user_id', req.user_id)
    return await req.invoke('users.profile', req.collaborators.users.profile, req.user_id, target,
                            read_only=True)


async def _user_search(req):
    filters = {'role': req.entities['role']} if 'role' in req.entities else {}
    return await req.invoke('users.search', req.collaborators.users.search, req.user_id,
                            req.entities['search_term'], filters, read_only=True)


async def _comment_list(req):
    return await req.invoke('comments.list', req.collaborators.comments.list, req.user_id,
                            req.entities['bug_id'], read_only=True)


async def _comment_add(req):
    return await req.invoke('comments.create', req.collaborators.comments.create, req.user_id,
                            req.entities['bug_id'], {'content': req.entities['content']})


async def _comment_search(req):
    return await req.invoke('comments.search', req.collaborators.comments.search, req.user_id,
                            req.entities['search_term'], read_only=True)


async def _file_list(req):
    return await req.invoke('files.list', req.collaborators.files.list, req.user_id,
                            req.entities['bug_id'], read_only=True)


async def _file_attach(req):
    return await req.invoke('files.create', req.collaborators.files.create, req.user_id,
                            req.entities['bug_id'], {'name': req.entities['file_name']})


async def _file_search(req):
    filters = {'bug_id': req.entities['bug_id']} if 'bug_id' in req.entities else {}
    return await req.invoke('files.search', req.collaborators.files.search, req.user_id,
                            req.entities['search_term'], filters, read_only=True)


def _merge_reads(tasks: List[ReadTask], picks: Dict[str, str]) -> Tuple[Dict[str, Any], List[str]]:
    """Merge gathered reads by initiation order; failed reads become failed sections."""
    data: Dict[str, Any] = {}
    failed: List[str] = []
    for task in tasks:
        result = task.result if task.succeeded else None
        if result and result.get('success'):
            data[task.key] = (result.get('data') or {}).get(picks[task.key])
        else:
            data[task.key] = None
            failed.append(task.key)
    if failed:
        data['failed_sections'] = failed
    return data, failed


def _aggregate_result(
    tasks: List[ReadTask],
    picks: Dict[str, str],
    describe: Callable[[Dict[str, Any]], str]
) -> ActionResult:
    data, failed = _merge_reads(tasks, picks)
    if len(failed) == len(tasks):
        return failure_result(
            "Sorry, I couldn't load any of that right now.",
            FailureKind.COLLABORATOR_FAILURE,
            error='all reads failed',
            data=data
        )
    message = describe(data)
    if failed:
        message += f" Some sections couldn't be loaded: {', '.join(failed)}."
    return {'success': True, 'message': message, 'data': data}


SEARCH_SECTIONS = ('bugs', 'teams', 'users', 'comments', 'files')


async def _search(req: DispatchRequest) -> ActionResult:
    term = req.entities['search_term']
    c = req.collaborators
    tasks = await req.gather([
        ('bugs', 'bugs.search', c.bugs.search, (req.user_id, term)),
        ('teams', 'teams.search', c.teams.search, (req.user_id, term)),
        ('users', 'users.search', c.users.search, (req.user_id, term, {})),
        ('comments', 'comments.search', c.comments.search, (req.user_id, term)),
        ('files', 'files.search', c.files.search, (req.user_id, term, {})),
    ])

    def describe(data: Dict[str, Any]) -> str:
        data['count'] = sum(len(data.get(key) or []) for key in SEARCH_SECTIONS)
        return f"Found {data['count']} result(s) for \"{term}\"."

    return _aggregate_result(tasks, {key: key for key in SEARCH_SECTIONS}, describe)


async def _dashboard(req: DispatchRequest) -> ActionResult:
    c = req.collaborators
    tasks = await req.gather([
        ('stats', 'bugs.stats', c.bugs.stats, (req.user_id,)),
        ('teams', 'teams.list_for_user', c.teams.list_for_user, (req.user_id,)),
        ('assigned_bugs', 'bugs.list', c.bugs.list,
         (req.user_id, {'assigned_to_me': True}, {'limit': 5, 'sort': 'priority'})),
    ])
    picks = {'stats': 'stats', 'teams': 'teams', 'assigned_bugs': 'bugs'}
    return _aggregate_result(tasks, picks, lambda data: "Here's your overview.")


async def _analytics(req: DispatchRequest) -> ActionResult:
    c = req.collaborators
    tasks = await req.gather([
        ('bug_stats', 'bugs.stats', c.bugs.stats, (req.user_id,)),
        ('team_stats', 'teams.stats', c.teams.stats, (req.user_id,)),
        ('analytics', 'bugs.list', c.bugs.list, (req.user_id, req.filters, {'include_analytics': True})),
    ])
    picks = {'bug_stats': 'stats', 'team_stats': 'teams', 'analytics': 'analytics'}
    return _aggregate_result(tasks, picks, lambda data: "Here are your analytics.")


# ============================================================================
# RESPONSE BUILDERS
# ============================================================================

def _bug_list_response(req: DispatchRequest, result: ActionResult) -> ActionResult:
    data = result.get('data') or {}
    if result.get('success') and not data.get('bugs'):
        result = dict(result, message="No bugs match that right now.")
    return result


def _bug_create_response(req: DispatchRequest, result: ActionResult) -> ActionResult:
    if result.get('success') and req.entities.get('assigned_user_name'):
        result = dict(result, message=f"{result['message']} Assigned to {req.entities['assigned_user_name']}.")
    return result


def _team_response(req: DispatchRequest, result: ActionResult) -> ActionResult:
    if result.get('success') and req.entities.get('team_defaulted'):
        result = dict(result, message=f"{result['message']} (using your only team)")
    return result


# ============================================================================
# THE TABLE
# ============================================================================

def _route(name: str, call: RouteCall, label: str, **kwargs: Any) -> IntentRoute:
    for key in ('required', 'optional', 'examples'):
        if key in kwargs:
            kwargs[key] = tuple(kwargs[key])
    return IntentRoute(name=name, call=call, label=label, **kwargs)


def _bug_list_route(name: str, label: str, **fixed: Any) -> IntentRoute:
    return _route(name, _list_bugs(**fixed), label, optional=BUG_LIST_ENTITIES,
                  build=_bug_list_response, examples=['Show all bugs', 'Show high priority bugs'])


ROUTES: Dict[str, IntentRoute] = {route.name: route for route in (
    # Conversation
    _route('greeting', _message_route('greeting'), 'say hello'),
    _route('help', _message_route('help'), 'show help'),
    _route('goodbye', _message_route('goodbye'), 'say goodbye'),
    _route('general_query', _general_query, 'answer that'),

    # Bugs
    _bug_list_route('bug_list', 'list bugs'),
    _route('bug_create', _bug_create, 'create the bug', required=['title'],
           optional=['description', 'priority', 'status', 'component', 'team_id', 'assigned_user_id'],
           build=_bug_create_response, idempotent=False,
           missing_message="Please provide a bug title to create a new bug.",
           examples=['Try: "Create a bug for login issue"', 'Try: "Report a bug about navigation"']),
    _route('bug_search', _bug_search, 'search bugs', required=['search_term'],
           missing_message="What should I search the bugs for?",
           examples=['Search bugs for "login"', 'Find bugs about checkout']),
    _route('bug_details', _bug_details, 'load that bug', required=['bug_id'],
           missing_message="Which bug do you mean?",
           examples=['Show bug #3', 'Show details of bug 12']),
    _route('bug_assign', _bug_assign, 'assign the bug', required=['bug_id', 'assigned_user_id'],
           idempotent=False, missing_message="Tell me which bug to assign and to whom.",
           examples=['Assign bug #3 to John', 'Assign that bug to me']),
    _route('bug_update', _bug_update, 'update the bug', required=['bug_id', 'status'],
           optional=['priority'], idempotent=False,
           missing_message="Tell me which bug to update and its new status.",
           examples=['Mark bug #3 as resolved', 'Close bug 7']),
    _route('bug_delete', _bug_delete, 'delete the bug', required=['bug_id'], idempotent=False,
           missing_message="Which bug should I delete?",
           examples=['Delete bug #3']),
    _route('bug_stats', _bug_stats, 'load bug statistics'),
    _bug_list_route('bug_status_open', 'list open bugs', filters={'status': 'open'}),
    _bug_list_route('bug_status_closed', 'list closed bugs', filters={'status': 'closed'}),
    _bug_list_route('bug_status_progress', 'list bugs in progress', filters={'status': 'in-progress'}),
    _bug_list_route('bug_status_resolved', 'list resolved bugs', filters={'status': 'resolved'}),
    _bug_list_route('bug_priority_high', 'list high priority bugs', filters={'priority': 'high'}),
    _bug_list_route('bug_priority_critical', 'list critical bugs', filters={'priority': 'critical'}),
    _bug_list_route('bug_priority_medium', 'list medium priority bugs', filters={'priority': 'medium'}),
    _bug_list_route('bug_priority_low', 'list low priority bugs', filters={'priority': 'low'}),
    _bug_list_route('priority_bugs', 'list priority bugs',
                    filters={'priority': ['critical', 'high']}, sort='priority'),
    _bug_list_route('my_bugs', 'list your bugs', filters={'assigned_to_me': True}),

    # Teams
    _route('team_list', _team_list, 'list your teams'),
    _route('team_create', _team_create, 'create the team', required=['team_name'],
           optional=['description'], idempotent=False,
           missing_message="What should the new team be called?",
           examples=['Create team called Falcons', 'Create a team named "QA Squad"']),
    _route('team_details', _team_details, 'load the team', required=['team_id'], default_team=True,
           build=_team_response, missing_message="Which team do you mean?",
           examples=['Show my team', 'Show team details']),
    _route('team_add_member', _team_add_member, 'add the member', required=['team_id', 'member_identifier'],
           optional=['role'], idempotent=False, default_team=True, build=_team_response,
           missing_message="Tell me who to add and to which team.",
           examples=['Add john@example.com to my team', 'Add Priya to the team as admin']),
    _route('team_search', _team_search, 'search teams', required=['search_term'],
           missing_message="What team name should I look for?",
           examples=['Find team "Core"']),
    _route('team_stats', _team_stats, 'load team statistics'),

    # People
    _route('people_list', _people_list, 'list people', optional=['team_id', 'role', 'search_term'],
           examples=['Show team members', 'List developers']),
    _route('user_profile', _user_profile, 'load the profile', optional=['assigned_user_id'],
           examples=['Show my profile', 'Show profile for John']),
    _route('user_search', _user_search, 'search people', required=['search_term'], optional=['role'],
           missing_message="Who are you looking for?",
           examples=['Find user "john"']),

    # Comments
    _route('comment_list', _comment_list, 'load comments', required=['bug_id'],
           missing_message="Which bug's comments do you want?",
           examples=['Show comments on bug #3']),
    _route('comment_add', _comment_add, 'add the comment', required=['bug_id', 'content'], idempotent=False,
           missing_message="Tell me which bug to comment on and what to say.",
           examples=['Comment on bug #3: fixed in the latest build']),
    _route('comment_search', _comment_search, 'search comments', required=['search_term'],
           missing_message="What should I look for in comments?",
           examples=['Search comments for "timeout"']),

    # Files
    _route('file_list', _file_list, 'load files', required=['bug_id'],
           missing_message="Which bug's files do you want?",
           examples=['Show files for bug #3']),
    _route('file_attach', _file_attach, 'attach the file', required=['bug_id', 'file_name'],
           idempotent=False, missing_message="Tell me which file to attach and to which bug.",
           examples=['Attach file screenshot.png to bug #3']),
    _route('file_search', _file_search, 'search files', required=['search_term'], optional=['bug_id'],
           missing_message="What file name should I look for?",
           examples=['Search files for "log"']),

    # Aggregates (concurrent reads)
    _route('search', _search, 'search', required=['search_term'],
           missing_message="What would you like me to search for?",
           examples=['Search for "login"', 'Find checkout']),
    _route('dashboard', _dashboard, 'load your overview'),
    _route('analytics', _analytics, 'load analytics', optional=BUG_LIST_ENTITIES),
)}

ROUTE_ALIASES: Dict[str, str] = {
    'assign_bug': 'bug_assign',
    'status_check': 'dashboard',
    'overview': 'dashboard',
    'my_teams': 'team_list',
    'team_members': 'people_list',
    'user_list': 'people_list',
    'my_profile': 'user_profile',
    'show_comments': 'comment_list',
    'add_comment': 'comment_add',
    'show_files': 'file_list',
    'global_search': 'search',
    'advanced_search': 'search',
    'bug_analytics': 'analytics',
    'bug_metrics': 'bug_stats',
    'team_analytics': 'team_stats',
    'metrics': 'analytics',
    'insights': 'analytics',
}

# (intent, entity present, refined route)
INTENT_REFINEMENTS: Tuple[Tuple[str, str, str], ...] = (
    ('bug_list', 'bug_id', 'bug_details'),
    ('team_list', 'team_id', 'team_details'),
)

# bug_list narrowed by a single status or priority -> the fixed-filter route
FILTER_REFINEMENTS: Dict[Tuple[str, str], str] = {
    ('status', 'open'): 'bug_status_open',
    ('status', 'closed'): 'bug_status_closed',
    ('status', 'in-progress'): 'bug_status_progress',
    ('status', 'resolved'): 'bug_status_resolved',
    ('priority', 'high'): 'bug_priority_high',
    ('priority', 'critical'): 'bug_priority_critical',
    ('priority', 'medium'): 'bug_priority_medium',
    ('priority', 'low'): 'bug_priority_low',
}

# general_query delegates by keyword, first rule wins
GENERAL_QUERY_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (('how many', 'count', 'total', 'stats', 'statistics'), 'bug_stats'),
    (('bug', 'bugs', 'issue', 'issues'), 'bug_list'),
    (('team', 'teams'), 'team_list'),
    (('user', 'users', 'people', 'member', 'members', 'who'), 'people_list'),
)
