"""
Lexicon-based sentiment scoring.

Scores follow the AFINN convention (-5 very negative .. +5 very positive).
The score of a message is the sum of its token scores divided by its token
count; labels come from the ordered threshold rules below.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from config import Config
from .base_types import Sentiment
from .tokenizer import stem


# (word, score) - stemmed at load time, first entry wins for a shared stem
SENTIMENT_LEXICON: Tuple[Tuple[str, int], ...] = (
    # positive
    ('amazing', 4), ('awesome', 4), ('brilliant', 4), ('fantastic', 4), ('outstanding', 5),
    ('excellent', 3), ('great', 3), ('good', 3), ('love', 3), ('nice', 3), ('happy', 3),
    ('perfect', 3), ('wonderful', 4), ('glad', 3), ('superb', 5), ('impressive', 3),
    ('thanks', 2), ('thank', 2), ('appreciate', 2), ('helpful', 2), ('like', 2),
    ('cool', 1), ('fine', 2), ('well', 2), ('success', 2), ('successful', 3),
    ('fixed', 2), ('solved', 2), ('resolved', 2), ('working', 1), ('works', 1),
    ('easy', 1), ('fast', 1), ('clean', 2), ('pleased', 3), ('welcome', 2),
    ('please', 1), ('yes', 1), ('ok', 1), ('okay', 1), ('improve', 2), ('improved', 2),
    ('ready', 1), ('smooth', 2), ('stable', 2), ('hello', 1), ('hi', 1),
    # negative
    ('bad', -3), ('terrible', -3), ('awful', -3), ('horrible', -3), ('worst', -3),
    ('hate', -3), ('angry', -3), ('annoying', -2), ('annoyed', -2), ('frustrated', -2),
    ('frustrating', -2), ('disappointed', -2), ('disappointing', -2), ('sad', -2),
    ('broken', -1), ('break', -1), ('breaks', -1), ('crash', -2), ('crashes', -2),
    ('crashed', -2), ('fail', -2), ('fails', -2), ('failed', -2), ('failure', -2),
    ('failing', -2), ('error', -2), ('errors', -2), ('problem', -2), ('problems', -2),
    ('wrong', -2), ('slow', -2), ('stuck', -2), ('freeze', -2), ('frozen', -2),
    ('missing', -2), ('lost', -3), ('urgent', -1), ('critical', -2), ('blocked', -2),
    ('blocker', -2), ('trouble', -2), ('ugly', -3),
    ('useless', -2), ('worse', -3), ('unable', -2), ('cannot', -1),
    ('no', -1), ('never', -1), ('damn', -4), ('stupid', -2), ('mess', -2), ('panic', -3),
    ('leak', -1), ('timeout', -1), ('corrupt', -3),
)


class SentimentAnalyzer:
    """Averages lexicon polarity over stemmed tokens."""

    # (label, predicate on score), checked in order
    RULES = (
        (Sentiment.POSITIVE, lambda score: score > Config.POSITIVE_SENTIMENT_THRESHOLD),
        (Sentiment.NEGATIVE, lambda score: score < Config.NEGATIVE_SENTIMENT_THRESHOLD),
    )

    def __init__(self, lexicon: Optional[Sequence[Tuple[str, int]]] = None):
        self.vocabulary: Dict[str, int] = {}
        for word, score in (lexicon if lexicon is not None else SENTIMENT_LEXICON):
            self.vocabulary.setdefault(stem(word), score)

    def score(self, stemmed_tokens: List[str]) -> float:
        if not stemmed_tokens:
            return 0.0
        total = sum(self.vocabulary.get(token, 0) for token in stemmed_tokens)
        return total / len(stemmed_tokens)

    def label(self, score: float) -> Sentiment:
        for sentiment, matches in self.RULES:
            if matches(score):
                return sentiment
        return Sentiment.NEUTRAL

    def analyze(self, stemmed_tokens: List[str]) -> Tuple[Sentiment, float]:
        """Return (label, score). Empty input is neutral."""
        if not stemmed_tokens:
            return Sentiment.NEUTRAL, 0.0
        value = self.score(stemmed_tokens)
        return self.label(value), value
