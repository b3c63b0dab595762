"""
Suggestion Generator & Response Composer

Follow-up suggestions come from a static per-intent table plus a few
conditional rules that look at the result. The composer builds the
response envelope for success, validation-failure and error paths alike.
"""

from typing import Any, Dict, Iterable, List, Optional

from config import Config
from connectors.base_operations import ActionResult
from error_handler import FailureKind, failure_result
from intelligence.base_types import ResponseEnvelope, Sentiment
from intelligence.intent_catalog import INTENT_CATALOG, response_for

HELP_SUGGESTION = "Type 'help' to see what I can do"

SUGGESTION_TABLE: Dict[str, List[str]] = {
    'greeting': ['Show my bugs', 'Show my teams', 'Create a bug'],
    'help': ['Show all bugs', 'Create a bug for the login page', 'Create team called Falcons', 'Show dashboard'],
    'goodbye': [],
    'general_query': ['Show all bugs', 'Show my teams', 'Show dashboard'],
    'bug_list': ['Show high priority bugs', 'Create a bug', 'Show bug statistics'],
    'bug_create': ['Show all bugs', 'Show my bugs'],
    'bug_search': ['Show all bugs', 'Show open bugs'],
    'bug_details': ['Show comments on this bug', 'Assign this bug to me', 'Mark this bug as resolved'],
    'bug_assign': ['Show my bugs', 'Add a comment to this bug'],
    'bug_update': ['Show open bugs', 'Show resolved bugs'],
    'bug_delete': ['Show all bugs'],
    'bug_stats': ['Show open bugs', 'Show analytics'],
    'priority_bugs': ['Assign a bug', 'Show all bugs'],
    'my_bugs': ['Show high priority bugs', 'Show dashboard'],
    'team_list': ['Show team members', 'Create a team'],
    'team_create': ['Show my teams'],
    'team_details': ['Show team members', 'Show team stats'],
    'team_add_member': ['Show team members'],
    'team_search': ['Show my teams'],
    'team_stats': ['Show analytics', 'Show my teams'],
    'people_list': ['Show my profile', 'Add a member to my team'],
    'user_profile': ['Show my bugs', 'Show my teams'],
    'user_search': ['Show team members'],
    'comment_list': ['Add a comment to this bug'],
    'comment_add': ['Show comments on this bug'],
    'comment_search': ['Show all bugs'],
    'file_list': ['Attach a file to this bug'],
    'file_attach': ['Show files for this bug'],
    'file_search': ['Show all bugs'],
    'search': ['Show all bugs', 'Show my teams'],
    'dashboard': ['Show my bugs', 'Show high priority bugs', 'Show analytics'],
    'analytics': ['Show bug statistics', 'Show team stats'],
    'composite_query': ['Show dashboard'],
}

# Status/priority listing routes share the bug list suggestions
for _name in ('bug_status_open', 'bug_status_closed', 'bug_status_progress', 'bug_status_resolved',
              'bug_priority_high', 'bug_priority_critical', 'bug_priority_medium', 'bug_priority_low'):
    SUGGESTION_TABLE[_name] = SUGGESTION_TABLE['bug_list']

VALIDATION_SUGGESTIONS = ['Show all bugs', HELP_SUGGESTION]
ERROR_SUGGESTIONS = ['Try again', HELP_SUGGESTION]


def _iter_bugs(action_result: ActionResult) -> Iterable[Dict[str, Any]]:
    data = action_result.get('data') or {}
    for key in ('bugs', 'assigned_bugs'):
        for bug in data.get(key) or []:
            if isinstance(bug, dict):
                yield bug
    if isinstance(data.get('bug'), dict):
        yield data['bug']
    for sub in data.get('sub_results') or []:
        yield from _iter_bugs(sub.get('action_result') or {})


def _dedupe(items: Iterable[str], limit: int) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.append(item)
        if len(seen) >= limit:
            break
    return seen


class SuggestionGenerator:
    """Pure function of (intent, entities, success, result shape)"""

    def __init__(self, table: Optional[Dict[str, List[str]]] = None, limit: Optional[int] = None):
        self.table = table if table is not None else SUGGESTION_TABLE
        self.limit = limit or Config.SUGGESTION_LIMIT

    def generate(
        self,
        intent: str,
        entities: Dict[str, Any],
        success: bool,
        action_result: ActionResult
    ) -> List[str]:
        suggestions: List[str] = list(action_result.get('suggestions') or [])

        if success and any(not bug.get('assigned_to') for bug in _iter_bugs(action_result)):
            suggestions.append('Show unassigned bugs')

        if success and intent == 'bug_create':
            if not entities.get('assigned_user_id'):
                suggestions.append('Assign this bug to someone')
            suggestions.append('Add a comment to this bug')

        if success and intent == 'team_create':
            suggestions.append('Add members to this team')

        suggestions.extend(self.table.get(intent, []))

        if not success:
            suggestions.append(HELP_SUGGESTION)

        return _dedupe(suggestions, self.limit)


class ResponseComposer:
    """Assembles the response envelope; every field is always present"""

    def compose(
        self,
        intent: str,
        confidence: float,
        sentiment: Sentiment,
        entities: Dict[str, Any],
        action_result: ActionResult,
        suggestions: List[str]
    ) -> ResponseEnvelope:
        success = bool(action_result.get('success'))
        message = action_result.get('message') or response_for(intent)

        canned = response_for(intent) if intent in INTENT_CATALOG else None
        if success and canned and canned != message and intent != 'greeting':
            text = f"{canned} {message}"
        else:
            text = message

        return ResponseEnvelope(
            intent=intent,
            confidence=min(1.0, max(0.0, float(confidence))),
            sentiment=sentiment,
            entities=dict(entities),
            message=message,
            text=text,
            action_result=action_result,
            suggestions=list(suggestions),
            can_retry=bool(action_result.get('can_retry', False)),
        )

    def compose_validation_failure(self, error_message: str) -> ResponseEnvelope:
        return ResponseEnvelope(
            intent='invalid_input',
            confidence=0.0,
            sentiment=Sentiment.NEUTRAL,
            entities={},
            message=error_message,
            text=error_message,
            action_result=failure_result(error_message, FailureKind.INPUT_VALIDATION),
            suggestions=list(VALIDATION_SUGGESTIONS),
        )

    def compose_error(self) -> ResponseEnvelope:
        message = "Sorry, something went wrong on my side. Please try again."
        return ResponseEnvelope(
            intent='error',
            confidence=0.0,
            sentiment=Sentiment.NEUTRAL,
            entities={},
            message=message,
            text=message,
            action_result=failure_result(message, FailureKind.INTERNAL_ERROR, can_retry=True),
            suggestions=list(ERROR_SUGGESTIONS),
            can_retry=True,
        )
