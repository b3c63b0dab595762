"""
Tokenizer & Normalizer

Lowercases text, splits it into word tokens and Porter-stems each token.
Pure functions: the same input always yields the same tokens.
"""

from functools import lru_cache
from typing import Iterable, List

from nltk.stem.porter import PorterStemmer
from nltk.tokenize import RegexpTokenizer

_word_tokenizer = RegexpTokenizer(r"[a-z0-9_]+")
_stemmer = PorterStemmer()


def tokenize(text: str) -> List[str]:
    """Split text into lowercase word tokens (no stemming)."""
    if not text:
        return []
    return _word_tokenizer.tokenize(text.lower())


@lru_cache(maxsize=4096)
def stem(word: str) -> str:
    return _stemmer.stem(word)


def stem_tokens(tokens: Iterable[str]) -> List[str]:
    return [stem(token) for token in tokens]


def normalize(text: str) -> List[str]:
    """text -> stemmed tokens. Empty input yields an empty list."""
    return stem_tokens(tokenize(text))
