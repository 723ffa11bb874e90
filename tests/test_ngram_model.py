"""
Tests for the backoff N-gram model and its ARPA reader.
"""

import numpy as np
import pytest

from ngram_model import UNK_LOGPROB, ContextState, load_arpa


class TestContextState:
    """Tests for the rolling context window."""

    def test_push_truncates_to_capacity(self):
        state = ContextState(2)
        for word_id in (1, 2, 3):
            state.push(word_id)
        assert state.words == (2, 3)
        assert state.length == 2
        assert state.last_word == 3

    def test_empty(self):
        state = ContextState(3)
        assert state.length == 0
        assert state.last_word is None

    def test_copy_is_independent(self):
        state = ContextState(3, (4, 5))
        scratch = state.copy()
        scratch.push(6)
        assert state.words == (4, 5)
        assert scratch.words == (4, 5, 6)

    def test_zero_capacity_stays_empty(self):
        state = ContextState(0)
        state.push(1)
        assert state.length == 0

    def test_equality(self):
        assert ContextState(2, (1, 2)) == ContextState(2, (1, 2))
        assert ContextState(2, (1, 2)) != ContextState(2, (2, 1))
        assert ContextState(2, (1,)) != ContextState(3, (1,))


class TestNgramModel:
    """Tests for vocabulary, scoring and the successor index."""

    def test_vocab(self, fox_model):
        assert fox_model.order == 2
        assert fox_model.vocab_size() == 5
        assert fox_model.vocab_bytes(3) == b"fox"
        start, end = fox_model.byte_range(0)
        assert fox_model.vocab_blob()[start:end] == b"the"
        assert fox_model.ngram_counts() == [5, 4]

    def test_state_capacity(self, fox_model, trigram_model):
        assert fox_model.state().capacity == 1
        assert trigram_model.state().capacity == 2

    def test_score_stored_bigram(self, fox_model):
        state = fox_model.state()
        fox_model.score(state, b"fox")
        logprob, oov = fox_model.score(state, b"jumps")
        assert logprob == -0.1
        assert oov is False
        assert state.last_word == 4

    def test_score_backs_off(self, fox_model):
        state = fox_model.state()
        fox_model.score(state, b"quick")
        logprob, _ = fox_model.score(state, b"fox")
        # bow(quick) + p(fox)
        assert logprob == pytest.approx(-0.2 + -0.8)

    def test_score_empty_context_is_unigram(self, fox_model):
        logprob, _ = fox_model.score(fox_model.state(), b"the")
        assert logprob == -0.7

    def test_score_trigram(self, trigram_model):
        state = trigram_model.state()
        trigram_model.score(state, b"<s>")
        trigram_model.score(state, b"a")
        logprob, _ = trigram_model.score(state, b"cat")
        assert logprob == -0.05

    def test_score_trigram_backoff(self, trigram_model):
        state = trigram_model.state()
        trigram_model.score(state, b"<s>")
        trigram_model.score(state, b"a")
        logprob, _ = trigram_model.score(state, b"dog")
        # bow(<s> a) + p(dog | a)
        assert logprob == pytest.approx(-0.1 + -0.4)

    def test_oov_with_unk(self, trigram_model):
        state = trigram_model.state()
        logprob, oov = trigram_model.score(state, b"zebra")
        assert oov is True
        assert logprob == -2.0
        assert state.last_word == trigram_model.unk_id

    def test_oov_without_unk_clears_state(self, fox_model):
        state = fox_model.state()
        fox_model.score(state, b"the")
        logprob, oov = fox_model.score(state, b"zebra")
        assert oov is True
        assert logprob == UNK_LOGPROB
        assert state.length == 0

    def test_successors(self, trigram_model):
        a = 3
        succ = trigram_model.successor_range(0, a)
        assert isinstance(succ, np.ndarray)
        assert succ.tolist() == [4, 5, 6]

    def test_successors_none(self, fox_model):
        assert fox_model.successor_range(0, 4).tolist() == []

    def test_successors_higher_level_unsupported(self, fox_model):
        with pytest.raises(ValueError):
            fox_model.successor_range(1, 0)

    def test_unigram_model_has_no_successors(self):
        model = load_arpa([
            "\\data\\", "ngram 1=2", "",
            "\\1-grams:", "-0.3 x", "-0.3 y", "",
            "\\end\\",
        ])
        assert model.order == 1
        assert model.state().capacity == 0
        assert model.successor_range(0, 0).tolist() == []


class TestLoadArpa:
    """Tests for ARPA parsing errors."""

    def test_missing_data_header(self):
        with pytest.raises(ValueError, match="data"):
            load_arpa(["\\1-grams:", "-1 a", "\\end\\"])

    def test_missing_end(self):
        with pytest.raises(ValueError, match="end"):
            load_arpa(["\\data\\", "ngram 1=1", "\\1-grams:", "-1 a"])

    def test_count_mismatch(self):
        with pytest.raises(ValueError, match="declares 2"):
            load_arpa([
                "\\data\\", "ngram 1=2",
                "\\1-grams:", "-1 a",
                "\\end\\",
            ])

    def test_bad_number(self):
        with pytest.raises(ValueError, match="Line 4"):
            load_arpa([
                "\\data\\", "ngram 1=1",
                "\\1-grams:", "abc a",
                "\\end\\",
            ])

    def test_unknown_word_in_bigram(self):
        with pytest.raises(ValueError, match="missing from the unigrams"):
            load_arpa([
                "\\data\\", "ngram 1=1", "ngram 2=1",
                "\\1-grams:", "-1 a",
                "\\2-grams:", "-1 a b",
                "\\end\\",
            ])

    def test_undeclared_section(self):
        with pytest.raises(ValueError, match="not declared"):
            load_arpa([
                "\\data\\", "ngram 1=1",
                "\\1-grams:", "-1 a",
                "\\2-grams:", "-1 a a",
                "\\end\\",
            ])

    def test_preamble_ignored(self, trigram_model):
        assert trigram_model.order == 3
        assert trigram_model.ngram_counts() == [8, 8, 2]
