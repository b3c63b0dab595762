# Intent Router - table-driven dispatch with a no-throw boundary

import re
from typing import Any, Dict, List, Optional, Tuple

from connectors.base_operations import ActionResult
from error_handler import ErrorClassifier, FailureKind, failure_result, format_error_for_user
from intelligence.entity_enhancer import resolve_sole_team
from logger import get_logger
from .actions import (
    BUG_LIST_ENTITIES,
    FILTER_REFINEMENTS,
    GENERAL_QUERY_RULES,
    INTENT_REFINEMENTS,
    ROUTE_ALIASES,
    ROUTES,
    DispatchRequest,
    IntentRoute,
)

logger = get_logger(__name__)

KEYWORD_SUGGESTIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('bug', ('Show all bugs', 'Create a bug for the login page')),
    ('team', ('Show my teams', 'Create team called Falcons')),
    ('user', ('Show team members', 'Show my profile')),
    ('people', ('Show team members',)),
    ('comment', ('Show comments on bug #1',)),
    ('file', ('Show files for bug #1',)),
)
LIST_FILTERS = set(BUG_LIST_ENTITIES) - {'limit', 'sort'}
DEFAULT_SUGGESTIONS = ('Type "help" to see what I can do', 'Show all bugs', 'Show my teams')


def _word_pattern(words) -> re.Pattern:
    return re.compile(r'\b(?:' + '|'.join(r'\s+'.join(map(re.escape, w.split())) for w in words) + r')\b',
                      re.IGNORECASE)


class IntentRouter:
    """
    Maps an intent to its dispatch-table route and runs it.

    dispatch() never raises: missing entities become a clarification,
    collaborator exceptions become a failed action result.
    """

    def __init__(
        self,
        routes: Optional[Dict[str, IntentRoute]] = None,
        aliases: Optional[Dict[str, str]] = None,
        verbose: bool = False
    ):
        self.routes = routes if routes is not None else ROUTES
        self.aliases = aliases if aliases is not None else ROUTE_ALIASES
        self.verbose = verbose
        self.general_rules = [(_word_pattern(words), route) for words, route in GENERAL_QUERY_RULES]

    def resolve(self, intent: str, entities: Dict[str, Any], text: str = '') -> str:
        """Canonical route name for an intent: aliases, then refinements, then delegation."""
        name = self.aliases.get(intent, intent)

        for source, entity, target in INTENT_REFINEMENTS:
            if name == source and entity in entities:
                name = target
                break

        if name == 'bug_list':
            narrowing = [key for key in entities if key in LIST_FILTERS]
            if len(narrowing) == 1 and narrowing[0] in ('status', 'priority'):
                key = narrowing[0]
                name = FILTER_REFINEMENTS.get((key, entities[key]), name)

        if name == 'general_query' and text:
            for pattern, target in self.general_rules:
                if pattern.search(text):
                    logger.debug(f"[ROUTER] general_query delegated to {target}")
                    return target

        return name

    def consumes(self, name: str) -> set:
        route = self.routes.get(name)
        return route.consumes if route else set()

    def clarify_unknown(self, intent: str, text: str) -> ActionResult:
        suggestions: List[str] = []
        lowered = text.lower()
        for keyword, examples in KEYWORD_SUGGESTIONS:
            if re.search(r'\b' + keyword, lowered):
                suggestions.extend(e for e in examples if e not in suggestions)
        return failure_result(
            "I'm not sure how to help with that. Could you rephrase it?",
            FailureKind.CLASSIFICATION_AMBIGUITY,
            error=f"unknown intent: {intent}",
            suggestions=suggestions or list(DEFAULT_SUGGESTIONS)
        )

    def clarify_missing(self, route: IntentRoute, missing: List[str], entities: Dict[str, Any]) -> ActionResult:
        message = route.missing_message or "I need a bit more detail to do that."
        if 'assigned_user_id' in missing and entities.get('person_reference'):
            message = f"I couldn't find anyone matching \"{entities['person_reference']}\". {message}"
        return failure_result(
            message,
            FailureKind.MISSING_ENTITY,
            error=f"missing: {', '.join(missing)}",
            missing_entities=missing,
            suggestions=list(route.examples)
        )

    async def dispatch(self, name: str, req: DispatchRequest, text: str = '') -> ActionResult:
        """
        Run one route.

        Args:
            name: Canonical route name (see resolve())
            req: Dispatch request for the caller
            text: Original message, for keyword suggestions

        Returns:
            Action result; never raises
        """
        route = self.routes.get(name)
        if route is None:
            logger.info(f"[ROUTER] No route for intent '{name}'")
            return self.clarify_unknown(name, text)

        try:
            if route.default_team and 'team_id' not in req.entities:
                team = await resolve_sole_team(req.collaborators, req.retry_manager, req.user_id)
                if team:
                    req.entities['team_id'] = team['id']
                    req.entities['team_defaulted'] = True

            missing = [entity for entity in route.required if entity not in req.entities]
            if missing:
                logger.debug(f"[ROUTER] {name} missing {missing}")
                return self.clarify_missing(route, missing, req.entities)

            result = await route.call(req)
            if route.build:
                result = route.build(req, result)

        except Exception as e:
            error_msg = str(e) or type(e).__name__
            classification = ErrorClassifier.classify(error_msg)
            logger.warning(f"[ROUTER] {name} failed ({classification.category.value}): {error_msg}")
            return failure_result(
                format_error_for_user(classification, route.label),
                FailureKind.COLLABORATOR_FAILURE,
                error=classification.category.value,
                can_retry=classification.is_retryable,
                suggestions=list(classification.suggestions)
            )

        if self.verbose:
            print(f"[ROUTER] {name}: success={result.get('success')}")
        return result
