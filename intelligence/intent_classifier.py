"""
Intent Classification Engine

Scores a message against the static intent catalog using stemmed-token
overlap. Low-scoring messages degrade to general_query instead of failing.

Author: AI System
Version: 2.0
"""

from typing import Dict, List, Optional, Tuple

from config import Config
from logger import get_logger
from .base_types import IntentDefinition, IntentMatch
from .intent_catalog import INTENT_CATALOG
from .sentiment import SentimentAnalyzer
from .tokenizer import normalize

logger = get_logger(__name__)

FALLBACK_INTENT = 'general_query'


class IntentClassifier:
    """
    Classify user intents from natural language

    For every catalog intent the score is the best phrase overlap:
        |stems(message) & stems(phrase)| / max(len(message), len(phrase))
    The highest score wins; ties keep the intent listed first.
    """

    def __init__(
        self,
        catalog: Optional[Dict[str, IntentDefinition]] = None,
        sentiment: Optional[SentimentAnalyzer] = None,
        verbose: bool = False
    ):
        self.verbose = verbose
        self.catalog = catalog if catalog is not None else INTENT_CATALOG
        self.sentiment = sentiment or SentimentAnalyzer()

        # Phrases are stemmed once; the catalog is read-only after init
        self.phrase_stems: Dict[str, List[Tuple[str, List[str]]]] = {
            name: [(phrase, normalize(phrase)) for phrase in definition.patterns]
            for name, definition in self.catalog.items()
        }

    def score_intent(self, tokens: List[str], intent: str) -> Tuple[float, Optional[str]]:
        """
        Best overlap score of stemmed message tokens against one intent.

        Returns:
            (score, phrase that produced it)
        """
        if not tokens:
            return 0.0, None

        token_set = set(tokens)
        best_score = 0.0
        best_phrase = None

        for phrase, phrase_tokens in self.phrase_stems.get(intent, []):
            if not phrase_tokens:
                continue
            common = len(token_set & set(phrase_tokens))
            score = common / max(len(tokens), len(phrase_tokens))
            if score > best_score:
                best_score = score
                best_phrase = phrase

        return best_score, best_phrase

    def score_all(self, tokens: List[str]) -> Dict[str, float]:
        """Scores for every intent, in catalog order."""
        return {name: self.score_intent(tokens, name)[0] for name in self.catalog}

    def classify(self, message: str, tokens: Optional[List[str]] = None) -> IntentMatch:
        """
        Classify the intent of a user message

        Args:
            message: User message to classify
            tokens: Pre-computed stemmed tokens (computed when omitted)

        Returns:
            IntentMatch with confidence in [0, 1] and sentiment
        """
        if tokens is None:
            tokens = normalize(message)

        best_intent = FALLBACK_INTENT
        best_score = 0.0
        best_phrase = None

        for name in self.catalog:
            score, phrase = self.score_intent(tokens, name)
            if score > best_score:
                best_intent, best_score, best_phrase = name, score, phrase

        sentiment, sentiment_score = self.sentiment.analyze(tokens)

        if best_score < Config.CLASSIFICATION_THRESHOLD:
            match = IntentMatch(
                intent=FALLBACK_INTENT,
                confidence=Config.FALLBACK_CONFIDENCE,
                sentiment=sentiment,
                sentiment_score=sentiment_score,
                fallback=True
            )
        else:
            match = IntentMatch(
                intent=best_intent,
                confidence=min(1.0, best_score),
                sentiment=sentiment,
                sentiment_score=sentiment_score,
                matched_phrase=best_phrase
            )

        logger.debug(f"[INTENT] '{message[:60]}' -> {match} via {match.matched_phrase!r}")
        if self.verbose:
            print(f"[INTENT] {match} ({match.sentiment.value})")

        return match
