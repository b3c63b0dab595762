"""
Error Classification and Handling System

Two concerns live here:
- The failure taxonomy every pipeline failure is converted into before it
  reaches the caller (input validation, missing entity, collaborator failure, ...)
- Classification of collaborator exceptions, which decides whether a read
  may be retried and how the failure is worded for the user

Author: AI System
Version: 1.0
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


class FailureKind(str, Enum):
    """Failures the interpreter reports instead of raising"""
    INPUT_VALIDATION = "input_validation"
    CLASSIFICATION_AMBIGUITY = "classification_ambiguity"
    MISSING_ENTITY = "missing_entity"
    COLLABORATOR_FAILURE = "collaborator_failure"
    MISSING_DEPENDENCY_CONTEXT = "missing_dependency_context"
    INTERNAL_ERROR = "internal_error"


class ErrorCategory(str, Enum):
    """Categories of collaborator errors with different handling strategies"""
    TRANSIENT = "transient"          # Temporary - retry with backoff
    RATE_LIMIT = "rate_limit"        # Backend throttled - retry with longer delay
    PERMISSION = "permission"        # Access denied - don't retry
    NOT_FOUND = "not_found"          # Missing record - don't retry
    VALIDATION = "validation"        # Rejected input - don't retry
    UNKNOWN = "unknown"              # Unknown - assume retryable


@dataclass
class ErrorClassification:
    """Complete error classification with recovery suggestions"""
    category: ErrorCategory
    is_retryable: bool
    explanation: str  # What happened in simple terms
    technical_details: Optional[str] = None
    suggestions: List[str] = field(default_factory=list)
    retry_delay_seconds: float = 0.0


class ErrorClassifier:
    """
    Classifies collaborator error messages.

    Checked in priority order, most specific first. Timeouts raised by
    asyncio carry no message, so callers pass "timed out" for them.
    """

    PERMISSION_PATTERNS = [
        'permission denied',
        'forbidden',
        'unauthorized',
        'not a member',
        'access denied',
        'not allowed',
        '401',
        '403',
    ]

    NOT_FOUND_PATTERNS = [
        'not found',
        'does not exist',
        'no such',
        '404',
    ]

    VALIDATION_PATTERNS = [
        'invalid',
        'required field',
        'is required',
        'bad request',
        'malformed',
        'already exists',
        'duplicate',
        '400',
    ]

    RATE_LIMIT_PATTERNS = [
        'rate limit',
        'too many requests',
        'quota exceeded',
        'throttled',
        '429',
    ]

    TRANSIENT_PATTERNS = [
        'timeout',
        'timed out',
        'connection',
        'network',
        'temporarily',
        'temporary',
        'unavailable',
        '502',
        '503',
        '504',
    ]

    @staticmethod
    def classify(error_msg: str) -> ErrorClassification:
        """
        Classify an error message and return handling strategy.

        Args:
            error_msg: The error message string

        Returns:
            ErrorClassification with category and retry decision
        """
        error_lower = (error_msg or '').lower()

        if ErrorClassifier._matches_patterns(error_lower, ErrorClassifier.PERMISSION_PATTERNS):
            return ErrorClassification(
                category=ErrorCategory.PERMISSION,
                is_retryable=False,
                explanation="You don't have access to do that",
                technical_details=error_msg,
                suggestions=["Check that you are a member of the right team"],
            )

        if ErrorClassifier._matches_patterns(error_lower, ErrorClassifier.NOT_FOUND_PATTERNS):
            return ErrorClassification(
                category=ErrorCategory.NOT_FOUND,
                is_retryable=False,
                explanation="I couldn't find what you were looking for",
                technical_details=error_msg,
                suggestions=["Show me my bugs", "List my teams"],
            )

        if ErrorClassifier._matches_patterns(error_lower, ErrorClassifier.VALIDATION_PATTERNS):
            return ErrorClassification(
                category=ErrorCategory.VALIDATION,
                is_retryable=False,
                explanation="That request couldn't be accepted as written",
                technical_details=error_msg,
                suggestions=["Try rephrasing with the details you want to set"],
            )

        if ErrorClassifier._matches_patterns(error_lower, ErrorClassifier.RATE_LIMIT_PATTERNS):
            return ErrorClassification(
                category=ErrorCategory.RATE_LIMIT,
                is_retryable=True,
                explanation="The service is busy right now",
                technical_details=error_msg,
                suggestions=["Try again in a moment"],
                retry_delay_seconds=2.0,
            )

        if ErrorClassifier._matches_patterns(error_lower, ErrorClassifier.TRANSIENT_PATTERNS):
            return ErrorClassification(
                category=ErrorCategory.TRANSIENT,
                is_retryable=True,
                explanation="The service took too long or was unreachable",
                technical_details=error_msg,
                suggestions=["Try again in a moment"],
            )

        return ErrorClassification(
            category=ErrorCategory.UNKNOWN,
            is_retryable=True,
            explanation="Something went wrong while handling that",
            technical_details=error_msg,
            suggestions=["Try a simpler or more specific request"],
        )

    @staticmethod
    def _matches_patterns(text: str, patterns: List[str]) -> bool:
        """Check if text matches any pattern"""
        return any(pattern in text for pattern in patterns)


def format_error_for_user(classification: ErrorClassification, operation: str) -> str:
    """
    Format an error classification into a plain-language message.

    Args:
        classification: The error classification
        operation: Human name of what was attempted ("list bugs", "create team")

    Returns:
        Message safe to show the user (no identifiers or stack traces)
    """
    return f"Sorry, I couldn't {operation}. {classification.explanation}."


def failure_result(
    message: str,
    kind: FailureKind,
    error: Optional[str] = None,
    **extra: Any
) -> Dict[str, Any]:
    """Build a failed action result in the collaborator result shape."""
    result: Dict[str, Any] = {
        'success': False,
        'message': message,
        'error': error or kind.value,
        'error_kind': kind.value,
    }
    result.update(extra)
    return result
