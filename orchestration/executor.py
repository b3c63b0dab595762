# Query Executor - simple dispatch, composite segments and dependency clarification

from dataclasses import dataclass, field
from statistics import mean
from typing import Any, Dict, List, Optional

from connectors.base_operations import ActionResult, Collaborators
from core.parallel_executor import ParallelExecutor
from core.resilience import RetryManager
from error_handler import FailureKind, failure_result
from intelligence.base_types import ContextDependency, ParsedQuery
from intelligence.context import ConversationContext
from intelligence.pipeline import DependencyResolver, QueryAnalyzer, build_filters
from logger import get_logger
from .actions import DispatchRequest
from .router import IntentRouter

logger = get_logger(__name__)

COMPOSITE_INTENT = 'composite_query'

DEPENDENCY_HINTS = {
    'bug': ('which bug you mean', ['Show all bugs', 'Use a bug number, like "bug #3"']),
    'team': ('which team you mean', ['Show my teams', 'Create team called Falcons']),
    'previous_result': ('what "it" refers to', ['Show all bugs', 'Use a bug number, like "bug #3"']),
    'previous_results': ('which results you mean', ['Show all bugs', 'Show open bugs']),
}


@dataclass
class ExecutionOutcome:
    """What running one message produced"""
    intent: str
    confidence: float
    entities: Dict[str, Any]
    action_result: ActionResult
    parsed: ParsedQuery
    # Action results whose data should be merged into context, in order
    results: List[ActionResult] = field(default_factory=list)


def dependency_clarification(missing: List[ContextDependency]) -> ActionResult:
    """Ask for the context a back-reference needs instead of guessing it."""
    unknowns: List[str] = []
    suggestions: List[str] = []
    for dependency in missing:
        what, hints = DEPENDENCY_HINTS.get(dependency.entity, ('what you are referring to', []))
        if what not in unknowns:
            unknowns.append(what)
        suggestions.extend(h for h in hints if h not in suggestions)

    return failure_result(
        f"I'm not sure {' or '.join(unknowns)}. Could you be more specific?",
        FailureKind.MISSING_DEPENDENCY_CONTEXT,
        error='missing context',
        needs_context=True,
        missing_dependencies=[d.to_dict() for d in missing],
        suggestions=suggestions
    )


class QueryExecutor:
    """
    Executes analyzed queries.

    Simple and dependent queries go straight to the router once their
    back-references are resolved. Composite queries run segment by
    segment, left to right; a dependent segment sees the previous
    segment's result as its most recent context.
    """

    def __init__(
        self,
        analyzer: QueryAnalyzer,
        router: IntentRouter,
        collaborators: Collaborators,
        retry_manager: RetryManager,
        parallel: Optional[ParallelExecutor] = None,
        resolver: Optional[DependencyResolver] = None,
        verbose: bool = False
    ):
        self.analyzer = analyzer
        self.router = router
        self.collaborators = collaborators
        self.retry_manager = retry_manager
        self.parallel = parallel or ParallelExecutor()
        self.resolver = resolver or analyzer.resolver
        self.verbose = verbose

    async def execute(
        self,
        parsed: ParsedQuery,
        user_id: str,
        context: ConversationContext,
        user_profile: Optional[Dict[str, Any]] = None
    ) -> ExecutionOutcome:
        if len(parsed.sub_queries) > 1:
            return await self._execute_composite(parsed, user_id, context, user_profile)
        return await self._execute_single(parsed, user_id, context, user_profile)

    async def _execute_single(self, parsed, user_id, context, user_profile) -> ExecutionOutcome:
        route_name = self.router.resolve(parsed.intent, parsed.entities, parsed.text)
        entities, missing = self.resolver.resolve(parsed, self.router.consumes(route_name), context)

        if missing:
            logger.debug(f"[EXECUTOR] {route_name} needs context: {[d.context_key for d in missing]}")
            result = dependency_clarification(missing)
            return ExecutionOutcome(route_name, parsed.confidence, entities, result, parsed, [result])

        route_name = self.router.resolve(parsed.intent, entities, parsed.text)
        parsed.entities = entities
        parsed.filters = build_filters(entities)

        request = DispatchRequest(
            user_id=user_id,
            entities=entities,
            collaborators=self.collaborators,
            retry_manager=self.retry_manager,
            parallel=self.parallel,
            parsed=parsed,
            context=context,
            user_profile=user_profile
        )
        result = await self.router.dispatch(route_name, request, parsed.text)
        return ExecutionOutcome(route_name, parsed.confidence, request.entities, result, parsed, [result])

    async def _execute_composite(self, parsed, user_id, context, user_profile) -> ExecutionOutcome:
        sub_results: List[Dict[str, Any]] = []
        results: List[ActionResult] = []
        confidences: List[float] = []
        previous: Optional[ActionResult] = None

        for sub in parsed.sub_queries:
            view = context.threaded_with(previous) if sub.depends_on_previous and previous else context
            segment = await self.analyzer.analyze(sub.text, user_id, view)
            outcome = await self._execute_single(segment, user_id, view, user_profile)

            sub_results.append({
                'index': sub.index,
                'text': sub.text,
                'intent': outcome.intent,
                'confidence': outcome.confidence,
                'entities': outcome.entities,
                'action_result': outcome.action_result,
            })
            results.append(outcome.action_result)
            confidences.append(outcome.confidence)
            previous = outcome.action_result

            if self.verbose:
                print(f"[EXECUTOR] segment {sub.index} -> {outcome.intent}: "
                      f"{outcome.action_result.get('success')}")

        action_result: ActionResult = {
            'success': all(r.get('success') for r in results),
            'message': ' '.join(r.get('message', '') for r in results if r.get('message')),
            'data': {'sub_results': sub_results},
        }
        return ExecutionOutcome(
            COMPOSITE_INTENT,
            min(1.0, max(0.0, mean(confidences))),
            parsed.entities,
            action_result,
            parsed,
            results
        )
