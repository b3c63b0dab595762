"""
Intelligence System v2.0

Deterministic, rule-based understanding of chat messages: tokenizing,
intent scoring, entity extraction, context-aware enhancement and
query-complexity analysis.
"""

from .base_types import (
    Sentiment, QueryType,
    IntentDefinition, IntentMatch,
    TimeRange, Comparison, ContextDependency,
    SubQuery, ParsedQuery, ResponseEnvelope,
    to_serializable
)

from .tokenizer import tokenize, stem, normalize
from .sentiment import SentimentAnalyzer
from .intent_catalog import INTENT_CATALOG, response_for
from .intent_classifier import IntentClassifier
from .entity_extractor import EntityExtractor
from .entity_enhancer import EntityEnhancer, resolve_sole_team

from .pipeline import (
    QueryComplexityClassifier,
    QueryDecomposer,
    DependencyResolver,
    QueryAnalyzer,
    build_filters
)

from .context import (
    ConversationContext,
    SessionStore,
    InMemorySessionStore
)

__all__ = [
    # Base types
    'Sentiment', 'QueryType',
    'IntentDefinition', 'IntentMatch',
    'TimeRange', 'Comparison', 'ContextDependency',
    'SubQuery', 'ParsedQuery', 'ResponseEnvelope',
    'to_serializable',
    # Text processing
    'tokenize', 'stem', 'normalize',
    'SentimentAnalyzer',
    # Classification and extraction
    'INTENT_CATALOG', 'response_for',
    'IntentClassifier',
    'EntityExtractor',
    'EntityEnhancer', 'resolve_sole_team',
    # Query analysis
    'QueryComplexityClassifier',
    'QueryDecomposer',
    'DependencyResolver',
    'QueryAnalyzer',
    'build_filters',
    # Session state (injected, never a module global)
    'ConversationContext',
    'SessionStore',
    'InMemorySessionStore',
]

__version__ = '2.0.0'
