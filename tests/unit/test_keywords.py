"""Tests for keyword extraction."""
from rag_studio.rag.keywords import extract_keywords


def test_most_frequent_terms_first():
    chunks = [
        "Neural networks learn representations. Networks are trained.",
        "Training neural networks requires data. Data matters.",
    ]
    keywords = extract_keywords(chunks)
    assert keywords[:3] == ["networks", "neural", "data"]
    assert len(keywords) <= 5


def test_stop_words_and_short_tokens_are_ignored():
    keywords = extract_keywords(["The a an x y of the THE is it rag rag"])
    assert keywords == ["rag"]


def test_case_insensitive():
    assert extract_keywords(["Python PYTHON python"]) == ["python"]


def test_ties_keep_first_seen_order():
    assert extract_keywords(["zeta alpha mu"]) == ["zeta", "alpha", "mu"]


def test_korean_tokens():
    keywords = extract_keywords(["인공지능 모델 인공지능 학습 그리고 데이터"])
    assert keywords[0] == "인공지능"
    assert "그리고" not in keywords


def test_limit():
    chunks = ["one two three four five six seven"]
    assert len(extract_keywords(chunks)) == 5
    assert extract_keywords(chunks, limit=2) == ["one", "two"]


def test_empty_input():
    assert extract_keywords([]) == []
    assert extract_keywords(["the and of"]) == []


def test_repeated_word_beats_single_and_stop_words_drop():
    assert extract_keywords(["apple apple banana the a"]) == ["apple", "banana"]
