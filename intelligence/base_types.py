"""
Base Types for Intelligence System

Defines core data structures used across the interpreter pipeline.

Author: AI System
Version: 2.0
"""

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import date, datetime


# ============================================================================
# SENTIMENT & QUERY TYPES
# ============================================================================

class Sentiment(str, Enum):
    """Polarity of a message"""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class QueryType(str, Enum):
    """Structural complexity of a message, in classification precedence order"""
    ANALYTICS = "analytics"
    COMPARISON = "comparison"
    COMPOSITE = "composite"
    DEPENDENT = "dependent"
    SIMPLE = "simple"


# ============================================================================
# INTENTS
# ============================================================================

@dataclass(frozen=True)
class IntentDefinition:
    """A catalog entry: trigger phrases plus canned responses"""
    name: str
    patterns: tuple
    responses: tuple


@dataclass
class IntentMatch:
    """Result of classifying one message"""
    intent: str
    confidence: float  # 0.0 to 1.0
    sentiment: Sentiment = Sentiment.NEUTRAL
    sentiment_score: float = 0.0
    matched_phrase: Optional[str] = None
    fallback: bool = False

    def __str__(self) -> str:
        return f"{self.intent}({self.confidence:.2f})"


# ============================================================================
# ENRICHMENT TYPES
# ============================================================================

@dataclass
class TimeRange:
    """A since-date filter derived from a temporal phrase"""
    phrase: str
    days: int
    since: datetime

    def to_filter(self) -> Dict[str, Any]:
        return {'type': 'since', 'phrase': self.phrase, 'days': self.days, 'date': self.since}


@dataclass
class Comparison:
    """A comparison operator found in the text"""
    operator: str  # greater, less, equal
    phrase: str
    value: Optional[int] = None


@dataclass
class ContextDependency:
    """A back-reference that needs a value from conversation context"""
    entity: str
    context_key: str
    fills: Optional[str] = None
    phrase: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'entity': self.entity, 'context_key': self.context_key}


# ============================================================================
# PARSED QUERIES
# ============================================================================

@dataclass
class SubQuery:
    """One segment of a composite message"""
    index: int
    text: str
    query_type: QueryType
    depends_on_previous: bool = False


@dataclass
class ParsedQuery:
    """Everything the pipeline knows about one message (or segment)"""
    text: str
    tokens: List[str] = field(default_factory=list)
    intent: str = 'general_query'
    confidence: float = 0.0
    sentiment: Sentiment = Sentiment.NEUTRAL
    entities: Dict[str, Any] = field(default_factory=dict)
    actions: List[str] = field(default_factory=list)
    filters: Dict[str, Any] = field(default_factory=dict)
    time_ranges: List[TimeRange] = field(default_factory=list)
    comparisons: List[Comparison] = field(default_factory=list)
    query_type: QueryType = QueryType.SIMPLE
    sub_queries: List[SubQuery] = field(default_factory=list)
    dependencies: List[ContextDependency] = field(default_factory=list)

    @property
    def is_composite(self) -> bool:
        return self.query_type == QueryType.COMPOSITE

    @property
    def is_dependent_query(self) -> bool:
        return self.query_type == QueryType.DEPENDENT

    def __str__(self) -> str:
        return f"ParsedQuery({self.intent}, {self.query_type.value}, {sorted(self.entities)})"


# ============================================================================
# RESPONSE ENVELOPE
# ============================================================================

def to_serializable(value: Any) -> Any:
    """Convert pipeline values into JSON-friendly primitives."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_serializable(v) for v in value]
    if hasattr(value, '__iter__') and not isinstance(value, (str, bytes)):
        return [to_serializable(v) for v in value]
    return value


@dataclass
class ResponseEnvelope:
    """Uniform conversational response returned for every message"""
    intent: str
    confidence: float
    sentiment: Sentiment
    entities: Dict[str, Any]
    message: str
    text: str
    action_result: Dict[str, Any]
    suggestions: List[str]
    timestamp: datetime = field(default_factory=datetime.now)
    can_retry: bool = False

    @property
    def success(self) -> bool:
        return bool(self.action_result.get('success'))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intent': self.intent,
            'confidence': self.confidence,
            'sentiment': to_serializable(self.sentiment),
            'entities': to_serializable(self.entities),
            'message': self.message,
            'text': self.text,
            'action_result': to_serializable(self.action_result),
            'suggestions': list(self.suggestions),
            'timestamp': self.timestamp.isoformat(),
            'success': self.success,
            'can_retry': self.can_retry,
        }
