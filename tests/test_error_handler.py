import pytest

from error_handler import (
    ErrorCategory,
    ErrorClassifier,
    FailureKind,
    failure_result,
    format_error_for_user,
)


@pytest.mark.parametrize("message, category, retryable", [
    ("403 Forbidden", ErrorCategory.PERMISSION, False),
    ("You're not a member of that team", ErrorCategory.PERMISSION, False),
    ("bug 12 not found", ErrorCategory.NOT_FOUND, False),
    ("title is required", ErrorCategory.VALIDATION, False),
    ("429 Too Many Requests", ErrorCategory.RATE_LIMIT, True),
    ("connection reset by peer", ErrorCategory.TRANSIENT, True),
    ("something odd", ErrorCategory.UNKNOWN, True),
])
def test_classification(message, category, retryable):
    classification = ErrorClassifier.classify(message)
    assert classification.category == category
    assert classification.is_retryable is retryable


def test_permission_outranks_not_found():
    assert ErrorClassifier.classify("404: access denied").category == ErrorCategory.PERMISSION


def test_rate_limit_has_longer_delay():
    assert ErrorClassifier.classify("rate limit hit").retry_delay_seconds == 2.0


def test_user_message_hides_details():
    classification = ErrorClassifier.classify("Traceback ... ConnectionError at 10.0.0.3")
    text = format_error_for_user(classification, "list bugs")
    assert text.startswith("Sorry, I couldn't list bugs.")
    assert '10.0.0.3' not in text


def test_failure_result_shape():
    result = failure_result("Nope.", FailureKind.MISSING_ENTITY, missing_entities=['title'])
    assert result == {
        'success': False,
        'message': "Nope.",
        'error': 'missing_entity',
        'error_kind': 'missing_entity',
        'missing_entities': ['title'],
    }
