from intelligence.tokenizer import normalize, stem_tokens, tokenize


def test_tokenize_lowercases_and_drops_punctuation():
    assert tokenize("Show ALL bugs!") == ['show', 'all', 'bugs']


def test_normalize_stems_each_token():
    assert normalize("showing bugs") == ['show', 'bug']


def test_empty_input_yields_empty_sequence():
    assert normalize("") == []
    assert tokenize("") == []
    assert normalize("   ?!  ") == []


def test_normalize_is_deterministic():
    message = "Assign the crashing login bugs to John"
    assert normalize(message) == normalize(message)


def test_stem_tokens_matches_normalize():
    assert stem_tokens(tokenize("created teams")) == normalize("created teams")
