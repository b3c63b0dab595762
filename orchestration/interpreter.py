"""
Command Interpreter

The single entry point: free text in, response envelope out.

    raw text -> validate -> analyze (tokenize, classify, extract, enhance,
    complexity) -> execute (simple | composite) -> context update ->
    suggestions -> envelope

Messages from the same user are handled one at a time; different users
run concurrently. Nothing raises past interpret().

Author: AI System
Version: 2.0
"""

from typing import Any, Dict, Optional

from config import Config
from connectors.base_operations import Collaborators
from core.input_validator import InputValidator
from core.parallel_executor import ParallelExecutor
from core.resilience import RetryManager
from intelligence.base_types import ResponseEnvelope
from intelligence.context import InMemorySessionStore, SessionStore
from intelligence.entity_enhancer import EntityEnhancer
from intelligence.entity_extractor import EntityExtractor
from intelligence.intent_classifier import IntentClassifier
from intelligence.pipeline import QueryAnalyzer
from logger import get_logger
from .executor import QueryExecutor
from .router import IntentRouter
from .suggestions import ResponseComposer, SuggestionGenerator

logger = get_logger(__name__)


class Interpreter:
    """Natural-language command interpreter for the bug tracker"""

    def __init__(
        self,
        collaborators: Collaborators,
        store: Optional[SessionStore] = None,
        retry_manager: Optional[RetryManager] = None,
        verbose: bool = False
    ):
        self.verbose = verbose or Config.VERBOSE
        self.collaborators = collaborators
        self.store = store or InMemorySessionStore()
        self.retry_manager = retry_manager or RetryManager()

        self.analyzer = QueryAnalyzer(
            classifier=IntentClassifier(verbose=self.verbose),
            extractor=EntityExtractor(verbose=self.verbose),
            enhancer=EntityEnhancer(collaborators, self.retry_manager),
            verbose=self.verbose
        )
        self.router = IntentRouter(verbose=self.verbose)
        self.executor = QueryExecutor(
            self.analyzer,
            self.router,
            collaborators,
            self.retry_manager,
            parallel=ParallelExecutor(),
            verbose=self.verbose
        )
        self.suggestions = SuggestionGenerator()
        self.composer = ResponseComposer()

        logger.debug(f"[INTERPRETER] Ready with {len(self.router.routes)} routes, config={Config.get_config()}")

    async def interpret(
        self,
        user_id: str,
        message: str,
        user_profile: Optional[Dict[str, Any]] = None,
        prior_context: Optional[Dict[str, Any]] = None
    ) -> ResponseEnvelope:
        """
        Interpret one chat message.

        Args:
            user_id: Opaque, stable caller id
            message: Free-form text
            user_profile: Optional display data ({'name': ...}) for templated text
            prior_context: Context fields layered over the stored context for this turn only

        Returns:
            ResponseEnvelope for success and failure alike
        """
        for is_valid, error in (InputValidator.validate_message(message),
                                InputValidator.validate_user_id(user_id)):
            if not is_valid:
                logger.info(f"[INTERPRETER] Rejected message: {error}")
                return self.composer.compose_validation_failure(error)

        try:
            async with self.store.lock(user_id):
                return await self._interpret(user_id, message, user_profile, prior_context)
        except Exception:
            logger.exception(f"[INTERPRETER] Unhandled failure for {user_id}")
            return self.composer.compose_error()

    async def _interpret(self, user_id, message, user_profile, prior_context) -> ResponseEnvelope:
        stored = self.store.get(user_id)
        view = stored.merged_with(prior_context)
        turn = stored.copy()

        self.store.append_history(user_id, message)

        parsed = await self.analyzer.analyze(message, user_id, view)
        outcome = await self.executor.execute(parsed, user_id, view, user_profile)

        for result in outcome.results:
            if result.get('success'):
                turn.merge_result(result.get('data'))

        success = bool(outcome.action_result.get('success'))
        suggestions = self.suggestions.generate(outcome.intent, outcome.entities, success, outcome.action_result)
        envelope = self.composer.compose(
            outcome.intent,
            outcome.confidence,
            parsed.sentiment,
            outcome.entities,
            outcome.action_result,
            suggestions
        )

        turn.remember(message, outcome.intent, outcome.entities, envelope.to_dict())
        self.store.update(user_id, turn.to_patch())

        logger.debug(f"[INTERPRETER] {user_id}: {outcome.intent} success={success}")
        return envelope

    def clear(self, user_id: str):
        """Forget a user's context and history"""
        self.store.clear(user_id)
