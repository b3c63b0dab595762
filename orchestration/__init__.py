"""
Orchestration system: turns analyzed queries into collaborator calls.

Architecture:
- actions.py: the intent dispatch table
- router.py: route resolution and the no-throw dispatch boundary
- executor.py: simple and composite execution, dependency clarification
- suggestions.py: follow-up suggestions and the response envelope
- interpreter.py: the interpret() entry point

Author: AI System
Version: 2.0
"""

from .actions import (
    DispatchRequest, IntentRoute,
    ROUTES, ROUTE_ALIASES, INTENT_REFINEMENTS, GENERAL_QUERY_RULES
)
from .router import IntentRouter
from .executor import QueryExecutor, ExecutionOutcome, COMPOSITE_INTENT
from .suggestions import SuggestionGenerator, ResponseComposer, SUGGESTION_TABLE
from .interpreter import Interpreter

__all__ = [
    # Dispatch table
    "DispatchRequest",
    "IntentRoute",
    "ROUTES",
    "ROUTE_ALIASES",
    "INTENT_REFINEMENTS",
    "GENERAL_QUERY_RULES",

    # Execution
    "IntentRouter",
    "QueryExecutor",
    "ExecutionOutcome",
    "COMPOSITE_INTENT",

    # Responses
    "SuggestionGenerator",
    "ResponseComposer",
    "SUGGESTION_TABLE",

    # Entry point
    "Interpreter",
]

__version__ = "2.0.0"
