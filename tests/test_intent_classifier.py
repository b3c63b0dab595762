import pytest

from intelligence.base_types import IntentDefinition, Sentiment
from intelligence.intent_classifier import FALLBACK_INTENT, IntentClassifier


@pytest.fixture(scope="module")
def classifier():
    return IntentClassifier()


@pytest.mark.parametrize("message, intent", [
    ("hello", 'greeting'),
    ("show all bugs", 'bug_list'),
    ("create team called Falcons", 'team_create'),
    ("assign that bug to John", 'bug_assign'),
    ("list my teams", 'team_list'),
    ("what can you do", 'help'),
    ("goodbye", 'goodbye'),
    ("delete bug 4", 'bug_delete'),
    ("comment on bug 3: fixed", 'comment_add'),
    ("show comments on bug 3", 'comment_list'),
    ("attach file log.txt to bug 2", 'file_attach'),
    ("find user John", 'user_search'),
    ("search comments mentioning timeout", 'comment_search'),
    ("search files", 'file_search'),
])
def test_classifies_common_messages(classifier, message, intent):
    assert classifier.classify(message).intent == intent


def test_score_is_overlap_over_longer_length(classifier):
    match = classifier.classify("show all bugs")
    # 'all bugs' shares {all, bug} with the 3-token message
    assert match.confidence == pytest.approx(2 / 3)


def test_zero_overlap_falls_back_with_fixed_confidence(classifier):
    match = classifier.classify("xyzzy plugh")
    assert match.intent == FALLBACK_INTENT
    assert match.confidence == 0.5
    assert match.fallback


def test_low_score_falls_back(classifier):
    # one matching token out of many stays under the threshold
    match = classifier.classify("the quarterly offsite agenda needs another bug bash slot")
    assert match.intent == FALLBACK_INTENT
    assert match.confidence == 0.5


def test_empty_message_falls_back(classifier):
    match = classifier.classify("")
    assert match.intent == FALLBACK_INTENT
    assert match.sentiment == Sentiment.NEUTRAL


def test_classification_is_deterministic(classifier):
    first = classifier.classify("assign that bug to John")
    for _ in range(5):
        again = classifier.classify("assign that bug to John")
        assert (again.intent, again.confidence) == (first.intent, first.confidence)


def test_ties_keep_catalog_order():
    catalog = {
        'first': IntentDefinition('first', ('open ticket',), ('one',)),
        'second': IntentDefinition('second', ('open ticket',), ('two',)),
    }
    assert IntentClassifier(catalog=catalog).classify("open ticket").intent == 'first'


def test_confidence_stays_in_range(classifier):
    for message in ("hello", "bug", "show bugs show bugs", "random words here"):
        assert 0.0 <= classifier.classify(message).confidence <= 1.0


def test_sentiment_is_reported(classifier):
    assert classifier.classify("thanks, this is great").sentiment == Sentiment.POSITIVE


def test_score_all_keeps_catalog_order(classifier):
    scores = classifier.score_all(["hello"])
    assert list(scores) == list(classifier.catalog)
    assert scores['greeting'] == 1.0
