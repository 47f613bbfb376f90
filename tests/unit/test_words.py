"""Unit tests for word pool generation and field value builders."""

import random

import pytest

from index_store_bench.words import (
    LOWERCASE_ALPHABET,
    SYMBOL_ALPHABET,
    concat_random_words,
    generate_word,
    generate_word_pool,
    random_symbol_words,
    words_from_passage,
)


pytestmark = pytest.mark.unit


class TestGenerateWordPool:
    @pytest.mark.parametrize(("word_length", "distinct"), [(1, 26), (3, 10), (15, 1000), (150, 10)])
    def test_returns_exact_number_of_distinct_words(self, word_length, distinct):
        pool = generate_word_pool(word_length, distinct, 42)

        assert len(pool) == distinct
        assert len(set(pool)) == distinct
        assert all(len(word) == word_length for word in pool)
        assert all(set(word) <= set(LOWERCASE_ALPHABET) for word in pool)

    def test_same_seed_yields_same_pool(self):
        assert generate_word_pool(8, 50, 7) == generate_word_pool(8, 50, 7)

    def test_different_seed_yields_different_pool(self):
        assert generate_word_pool(8, 50, 7) != generate_word_pool(8, 50, 8)

    def test_accepts_shared_random_instance(self):
        rng = random.Random(42)
        first = generate_word_pool(5, 10, rng)
        second = generate_word_pool(5, 10, rng)

        assert first == generate_word_pool(5, 10, 42)
        assert first != second

    def test_exhausting_the_alphabet_still_terminates(self):
        pool = generate_word_pool(1, 26, 3)

        assert sorted(pool) == list(LOWERCASE_ALPHABET)


class TestConcatRandomWords:
    def test_emits_requested_number_of_pool_words_with_trailing_space(self):
        pool = generate_word_pool(6, 20, 1)
        value = concat_random_words(pool, random.Random(2), 15)

        assert value.endswith(" ")
        tokens = value.split(" ")[:-1]
        assert len(tokens) == 15
        assert all(token in pool for token in tokens)

    def test_zero_words_is_empty(self):
        assert concat_random_words(["abc"], random.Random(0), 0) == ""

    def test_deterministic_for_seeded_generator(self):
        pool = generate_word_pool(4, 30, 9)

        assert concat_random_words(pool, random.Random(5), 40) == concat_random_words(pool, random.Random(5), 40)


class TestAlternativeValues:
    def test_passage_excerpts_are_bounded(self):
        rng = random.Random(42)
        for _ in range(50):
            value = words_from_passage(rng)
            # at most 13 excerpts, each shorter than a twentieth of the passage
            assert len(value) < 13 * 70

    def test_symbol_words_use_symbol_alphabet(self):
        value = random_symbol_words(random.Random(42))
        words = value.split(" ")[:-1]

        assert 4 <= len(words) <= 13
        assert all(4 <= len(word) <= 8 for word in words)
        assert set(value.replace(" ", "")) <= set(SYMBOL_ALPHABET)

    def test_generate_word_respects_alphabet(self):
        assert generate_word(10, random.Random(1), "xy").strip("xy") == ""
