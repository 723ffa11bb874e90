"""Top-k next-word prediction over a backoff N-gram model.

Given a caller-owned context state, the predictor:

  1. Enumerates candidates from the first-order successor index of the
     last context word only. This bounds the work by that word's
     branching factor C instead of the vocabulary size V.
  2. Scores every candidate against its own scratch copy of the state,
     using the full context.
  3. Keeps the k best in a bounded min-heap, O(C log k) overall.

The candidate set is deliberately first-order: a word that never
followed the last context word is never proposed, even if a longer
context would make it likely. Exact scoring in step 2 corrects the
ranking for the full context.

The model must already be loaded; predict() does no I/O.
"""

import heapq
from enum import Enum
from typing import NamedTuple

from model_registry import load_model
from ngram_model import UNK


class OOVPolicy(Enum):
    """What feed() does with a word that is not in the vocabulary."""
    SKIP = "skip"              # leave the state unchanged
    REJECT = "reject"          # raise OutOfVocabularyError
    SUBSTITUTE = "substitute"  # feed <unk> in its place


class TieBreak(Enum):
    """Order among candidates with equal log-probability.

    LOWER_ID:   smaller word id ranks higher.
    HIGHER_ID:  larger word id ranks higher.
    FIRST_SEEN: earlier position in successor enumeration ranks higher.
    """
    LOWER_ID = "lower-id"
    HIGHER_ID = "higher-id"
    FIRST_SEEN = "first-seen"


DEFAULT_K = 5
DEFAULT_OOV_POLICY = OOVPolicy.SKIP
DEFAULT_TIE_BREAK = TieBreak.LOWER_ID

# Successor index level holding first-order continuations.
FIRST_ORDER = 0


class OutOfVocabularyError(LookupError):
    """Raised by feed() under OOVPolicy.REJECT."""

    def __init__(self, word: str):
        super().__init__(f"Word not in vocabulary: {word!r}")
        self.word = word


class Prediction(NamedTuple):
    word: str
    logprob: float

    @property
    def prob(self) -> float:
        return 10.0 ** self.logprob


class VocabularyCache:
    """Bidirectional word <-> id mapping over ids [0, V).

    Also keeps each word's raw bytes, since that is what the model
    scores.
    """

    __slots__ = ('_bytes', '_strings', '_ids')

    def __init__(self, word_bytes: list[bytes]):
        self._bytes = word_bytes
        self._strings = [b.decode('utf-8') for b in word_bytes]
        self._ids = {s: i for i, s in enumerate(self._strings)}

    @classmethod
    def build(cls, vocab_size: int, byte_range_of, blob: bytes):
        """Capture every word from the model's vocabulary blob.

        Args:
            vocab_size: Number of ids V.
            byte_range_of: Callable id -> (start, end) into *blob*.
            blob: Bytes holding every word.
        """
        word_bytes = []
        for word_id in range(vocab_size):
            start, end = byte_range_of(word_id)
            word_bytes.append(bytes(blob[start:end]))
        return cls(word_bytes)

    def lookup(self, word: str) -> int | None:
        return self._ids.get(word)

    def string_of(self, word_id: int) -> str:
        return self._strings[word_id]

    def bytes_of(self, word_id: int) -> bytes:
        return self._bytes[word_id]

    def __len__(self):
        return len(self._strings)

    def __contains__(self, word):
        return word in self._ids


class NgramPredictor:
    """Ranked next-word predictions from a loaded N-gram model.

    The predictor owns only the vocabulary cache. Context states belong
    to the caller: feed() mutates the state it is given, predict() never
    does. Concurrent predict() calls on distinct states are safe;
    concurrent feed() calls on the same state are not.
    """

    def __init__(self, model, oov_policy=DEFAULT_OOV_POLICY,
                 tie_break=DEFAULT_TIE_BREAK):
        self.model = model
        self.oov_policy = OOVPolicy(oov_policy)
        self.tie_break = TieBreak(tie_break)
        self.vocab = VocabularyCache.build(
            model.vocab_size(), model.byte_range, model.vocab_blob(),
        )
        self._unk_id = self.vocab.lookup(UNK)
        if self.oov_policy is OOVPolicy.SUBSTITUTE and self._unk_id is None:
            raise ValueError(
                f"OOV policy 'substitute' needs a {UNK} entry in the "
                f"vocabulary"
            )

    @classmethod
    def from_file(cls, path: str, model_type=None, verbose: bool = False,
                  **kwargs) -> "NgramPredictor":
        """Load a model file through the registry and wrap it."""
        _, model = load_model(path, model_type=model_type, verbose=verbose)
        return cls(model, **kwargs)

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def new_state(self, words=()):
        """Fresh context state, fed with *words* in order."""
        state = self.model.state()
        for word in words:
            self.feed(state, word)
        return state

    def feed(self, state, word: str) -> int | None:
        """Advance *state* by *word*.

        Returns:
            Id that was fed, or None if the word was out of vocabulary
            and skipped (state left unchanged).

        Raises:
            OutOfVocabularyError: OOV word under OOVPolicy.REJECT.
        """
        word_id = self.vocab.lookup(word)
        if word_id is None:
            if self.oov_policy is OOVPolicy.SKIP:
                return None
            if self.oov_policy is OOVPolicy.REJECT:
                raise OutOfVocabularyError(word)
            word_id = self._unk_id
        self.model.score(state, self.vocab.bytes_of(word_id))
        return word_id

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------

    def successors(self, state):
        """Candidate ids: first-order successors of the last fed word.

        An empty context has no candidates.
        """
        if state.length == 0:
            return ()
        return self.model.successor_range(FIRST_ORDER, state.last_word)

    def _rank(self, word_id: int, position: int) -> int:
        # Larger rank wins a tie.
        if self.tie_break is TieBreak.LOWER_ID:
            return -word_id
        if self.tie_break is TieBreak.HIGHER_ID:
            return word_id
        return -position

    def predict(self, state, k: int = DEFAULT_K) -> list[Prediction]:
        """Top-k next words after *state*, best first.

        Returns at most k predictions; fewer if the last context word
        has fewer successors, none for an empty context or k <= 0.
        """
        if k <= 0:
            return []

        # Min-heap of (logprob, rank, id); heap[0] is the weakest kept.
        heap = []
        for position, cand in enumerate(self.successors(state)):
            cand = int(cand)
            scratch = state.copy()
            logprob, _ = self.model.score(scratch, self.vocab.bytes_of(cand))
            item = (logprob, self._rank(cand, position), cand)
            if len(heap) < k:
                heapq.heappush(heap, item)
            elif item[:2] > heap[0][:2]:
                heapq.heapreplace(heap, item)

        out = []
        while heap:
            logprob, _, cand = heapq.heappop(heap)
            out.append(Prediction(self.vocab.string_of(cand), logprob))
        out.reverse()
        return out
