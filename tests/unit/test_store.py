"""Tests for cosine similarity and the in-memory vector store."""
import math

import pytest

from rag_studio.errors import InvalidInputError
from rag_studio.rag.store import VectorStore, cosine_similarity, search


@pytest.fixture
def store() -> VectorStore:
    return VectorStore.from_embeddings(
        ["east", "north", "north-east", "west"],
        [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0], [-1.0, 0.0]],
    )


def test_cosine_identical_and_opposite():
    assert cosine_similarity([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)


def test_cosine_is_scale_invariant():
    assert cosine_similarity([1, 2], [10, 20]) == pytest.approx(1.0)


@pytest.mark.parametrize(
    "a, b",
    [
        (None, [1.0]),
        ([1.0], None),
        ([], []),
        ([1.0, 2.0], [1.0]),
        ([0.0, 0.0], [1.0, 1.0]),
    ],
)
def test_cosine_degenerate_inputs_score_zero(a, b):
    assert cosine_similarity(a, b) == 0.0


def test_from_embeddings_assigns_positional_ids(store):
    assert [entry.id for entry in store] == [0, 1, 2, 3]
    assert store[2].text == "north-east"
    assert store.dimension == 2
    assert len(store) == 4


def test_from_embeddings_length_mismatch():
    with pytest.raises(InvalidInputError):
        VectorStore.from_embeddings(["a", "b"], [[1.0]])


def test_search_ranks_by_similarity(store):
    results = store.search([1.0, 0.1], k=3)
    assert [r.text for r in results] == ["east", "north-east", "north"]
    assert results[0].similarity >= results[1].similarity >= results[2].similarity


def test_search_returns_min_of_k_and_size(store):
    assert len(store.search([1.0, 0.0], k=10)) == 4
    assert store.search([1.0, 0.0], k=0) == []


def test_search_result_carries_text_and_embedding(store):
    top = store.search([0.0, 1.0], k=1)[0]
    assert top.id == 1
    assert top.text == "north"
    assert top.embedding == (0.0, 1.0)
    assert math.isclose(top.similarity, 1.0)


def test_ties_keep_insertion_order():
    store = VectorStore.from_embeddings(
        ["first", "second", "third"],
        [[1.0, 0.0], [2.0, 0.0], [0.0, 1.0]],
    )
    results = store.search([1.0, 0.0], k=2)
    assert [r.id for r in results] == [0, 1]


def test_zero_query_scores_everything_zero(store):
    results = store.search([0.0, 0.0], k=4)
    assert [r.similarity for r in results] == [0.0] * 4
    assert [r.id for r in results] == [0, 1, 2, 3]


def test_wrong_dimension_query_scores_zero(store):
    results = store.search([1.0, 0.0, 0.0], k=2)
    assert all(r.similarity == 0.0 for r in results)


def test_zero_vector_entry_scores_zero():
    store = VectorStore.from_embeddings(["zero", "unit"], [[0.0, 0.0], [1.0, 0.0]])
    results = store.search([1.0, 0.0], k=2)
    assert [(r.id, r.similarity) for r in results] == [(1, 1.0), (0, 0.0)]


@pytest.mark.parametrize("bad_k", [-1, 1.5, "3", True])
def test_invalid_k(store, bad_k):
    with pytest.raises(InvalidInputError):
        store.search([1.0, 0.0], k=bad_k)


def test_empty_store_returns_nothing():
    assert VectorStore().search([1.0, 0.0], k=3) == []
    assert search([1.0, 0.0], None, k=3) == []


def test_search_does_not_mutate_store(store):
    before = store.to_list()
    store.search([0.3, 0.7], k=2)
    assert store.to_list() == before


def test_result_to_dict_hides_embedding_by_default(store):
    result = store.search([1.0, 0.0], k=1)[0]
    assert set(result.to_dict()) == {"id", "text", "similarity"}
    assert result.to_dict(include_embedding=True)["embedding"] == [1.0, 0.0]


def test_five_entries_top_three():
    store = VectorStore.from_embeddings(
        [f"chunk {i}" for i in range(5)],
        [[1.0, 0.0], [0.8, 0.2], [0.5, 0.5], [0.2, 0.8], [0.0, 1.0]],
    )
    results = store.search([1.0, 0.3], k=3)
    assert len(results) == 3
    similarities = [r.similarity for r in results]
    assert similarities == sorted(similarities, reverse=True)
    assert [entry.id for entry in store] == [0, 1, 2, 3, 4]
