"""Word-level backoff N-gram model used as the prediction engine.

Holds an already-estimated model (ARPA format) fully in memory and
exposes the small read-side surface the predictor consumes:

  - vocabulary size and per-word byte ranges into one bytes blob
  - fresh context states
  - scoring a word against a state (which also advances the state)
  - first-order successor lookup

The vocabulary is stored as a single bytes blob plus a numpy offset
array, and first-order successors as a CSR pair of numpy arrays
(offsets + ids), instead of one Python list per word. Probability
tables stay in dicts keyed by id tuples so log-probabilities come back
exactly as written in the model file.
"""

import sys

import numpy as np


# Log10 probability returned for a word the model has never seen, when
# the vocabulary carries no <unk> entry.
UNK_LOGPROB = -100.0

UNK = "<unk>"
BOS = "<s>"
EOS = "</s>"


class ContextState:
    """Rolling window of the most recent word ids.

    Capacity is ``order - 1``. The window itself is an immutable tuple;
    ``push`` rebinds it to a new, truncated tuple, so a ``copy()`` taken
    before a push never observes that push.
    """

    __slots__ = ('capacity', 'words')

    def __init__(self, capacity: int, words: tuple = ()):
        self.capacity = capacity
        self.words = tuple(words[-capacity:]) if capacity > 0 else ()

    @property
    def length(self) -> int:
        return len(self.words)

    @property
    def last_word(self) -> int | None:
        """Id of the most recently pushed word, or None when empty."""
        return self.words[-1] if self.words else None

    def push(self, word_id: int):
        if self.capacity <= 0:
            return
        words = self.words + (word_id,)
        self.words = words[-self.capacity:]

    def clear(self):
        self.words = ()

    def copy(self) -> "ContextState":
        return ContextState(self.capacity, self.words)

    def __len__(self):
        return len(self.words)

    def __eq__(self, other):
        if not isinstance(other, ContextState):
            return NotImplemented
        return self.capacity == other.capacity and self.words == other.words

    __hash__ = None

    def __repr__(self):
        return f"ContextState(capacity={self.capacity}, words={self.words!r})"


class NgramModel:
    """Backoff N-gram model operating on word ids.

    Scoring follows Katz backoff over log10 values:

        P(w | h) = p(h, w)                    if (h, w) is stored
                 = bow(h) + P(w | h[1:])      otherwise

    with a missing backoff weight counting as 0.0. Unigram lookup ends
    the recursion; a word outside the vocabulary scores as <unk> (or
    UNK_LOGPROB if there is no <unk>).
    """

    def __init__(self, order: int, words: list[str],
                 probs: list[dict], backoffs: list[dict]):
        """
        Args:
            order: Highest n-gram order in the model (>= 1).
            words: Vocabulary in id order.
            probs: probs[n] maps (n+1)-tuples of ids to log10 probability.
            backoffs: backoffs[n] maps (n+1)-tuples of ids to log10 backoff.
        """
        if order < 1:
            raise ValueError(f"Model order must be >= 1, got {order}")
        if len(probs) != order or len(backoffs) != order:
            raise ValueError(
                f"Expected {order} probability/backoff tables, "
                f"got {len(probs)}/{len(backoffs)}"
            )
        self.order = order
        self._probs = probs
        self._backoffs = backoffs

        # Vocabulary: one utf-8 blob, offsets[i]:offsets[i+1] is word i.
        encoded = [w.encode('utf-8') for w in words]
        self._blob = b"".join(encoded)
        self._offsets = np.zeros(len(encoded) + 1, dtype=np.int64)
        np.cumsum(np.array([len(b) for b in encoded], dtype=np.int64),
                  out=self._offsets[1:])
        self._ids = {b: i for i, b in enumerate(encoded)}
        if len(self._ids) != len(encoded):
            raise ValueError("Vocabulary contains duplicate words")

        self.unk_id = self._ids.get(UNK.encode('utf-8'))
        self._build_successors()

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------

    def vocab_size(self) -> int:
        return len(self._offsets) - 1

    def byte_range(self, word_id: int) -> tuple[int, int]:
        """Return the [start, end) span of a word inside vocab_blob()."""
        return int(self._offsets[word_id]), int(self._offsets[word_id + 1])

    def vocab_blob(self) -> bytes:
        return self._blob

    def vocab_bytes(self, word_id: int) -> bytes:
        start, end = self.byte_range(word_id)
        return self._blob[start:end]

    def ngram_counts(self) -> list[int]:
        """Number of stored n-grams per order, unigrams first."""
        return [len(table) for table in self._probs]

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def state(self) -> ContextState:
        """Fresh, empty context state."""
        return ContextState(self.order - 1)

    def score(self, state: ContextState, word: bytes) -> tuple[float, bool]:
        """Score *word* after *state* and advance *state* past it.

        Args:
            state: Context to score against; mutated in place.
            word: Utf-8 bytes of the word.

        Returns:
            (log10 probability, is_oov)
        """
        word_id = self._ids.get(bytes(word))
        if word_id is None:
            if self.unk_id is None:
                state.clear()
                return UNK_LOGPROB, True
            logprob = self._logprob(state.words, self.unk_id)
            state.push(self.unk_id)
            return logprob, True

        logprob = self._logprob(state.words, word_id)
        state.push(word_id)
        return logprob, False

    def _logprob(self, history: tuple, word_id: int) -> float:
        # Walk from the longest usable history down to the unigram,
        # accumulating backoff weights for every miss.
        history = history[len(history) - min(len(history), self.order - 1):]
        penalty = 0.0
        while history:
            n = len(history)
            p = self._probs[n].get(history + (word_id,))
            if p is not None:
                return penalty + p
            penalty += self._backoffs[n - 1].get(history, 0.0)
            history = history[1:]
        p = self._probs[0].get((word_id,))
        if p is None:
            return penalty + UNK_LOGPROB
        return penalty + p

    # ------------------------------------------------------------------
    # Successor index
    # ------------------------------------------------------------------

    def _build_successors(self):
        """Build the CSR first-order successor index from the bigrams."""
        n_vocab = self.vocab_size()
        if self.order < 2 or not self._probs[1]:
            self._succ_offsets = np.zeros(n_vocab + 1, dtype=np.int64)
            self._succ_ids = np.zeros(0, dtype=np.int64)
            return

        pairs = np.array(list(self._probs[1].keys()), dtype=np.int64)
        # Sort by (head, successor) so each slice is ascending by id.
        order = np.lexsort((pairs[:, 1], pairs[:, 0]))
        pairs = pairs[order]
        counts = np.bincount(pairs[:, 0], minlength=n_vocab)
        self._succ_offsets = np.zeros(n_vocab + 1, dtype=np.int64)
        np.cumsum(counts, out=self._succ_offsets[1:])
        self._succ_ids = pairs[:, 1].copy()

    def successor_range(self, level: int, word_id: int) -> np.ndarray:
        """Ids observed right after *word_id*.

        Only the first-order index (level 0) is stored.
        """
        if level != 0:
            raise ValueError(
                f"Only the first-order successor index (level 0) is "
                f"available, got level {level}"
            )
        start = self._succ_offsets[word_id]
        end = self._succ_offsets[word_id + 1]
        return self._succ_ids[start:end]


# ---- ARPA reader ----

def _parse_ngram_line(line: str, n: int, lineno: int):
    fields = line.split()
    if len(fields) not in (n + 1, n + 2):
        raise ValueError(
            f"Line {lineno}: expected {n}-gram entry, got {line!r}"
        )
    try:
        logprob = float(fields[0])
        bow = float(fields[-1]) if len(fields) == n + 2 else None
    except ValueError:
        raise ValueError(f"Line {lineno}: bad number in {line!r}") from None
    return logprob, fields[1:n + 1], bow


def load_arpa(lines, verbose: bool = False) -> NgramModel:
    """Read an ARPA backoff model from an iterable of text lines.

    Args:
        lines: Iterable of str (an open text file works).
        verbose: Print section progress to stderr.

    Returns:
        NgramModel holding every n-gram in the file.
    """
    declared: dict[int, int] = {}
    raw: dict[int, list] = {}
    section = None  # None -> before \data\, 0 -> header, n -> n-grams
    seen_end = False

    for lineno, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        if line == "\\data\\":
            section = 0
            continue
        if section is None:
            # Free-form preamble before \data\.
            continue
        if line == "\\end\\":
            seen_end = True
            break
        if line.startswith("\\") and line.endswith("-grams:"):
            try:
                section = int(line[1:-len("-grams:")])
            except ValueError:
                raise ValueError(
                    f"Line {lineno}: bad section header {line!r}") from None
            if section not in declared:
                raise ValueError(
                    f"Line {lineno}: section {section}-grams not declared "
                    f"in \\data\\ header"
                )
            raw[section] = []
            continue
        if section == 0:
            if not line.startswith("ngram "):
                raise ValueError(f"Line {lineno}: bad header line {line!r}")
            key, _, value = line[len("ngram "):].partition("=")
            try:
                declared[int(key)] = int(value)
            except ValueError:
                raise ValueError(f"Line {lineno}: bad header line {line!r}")
            continue
        raw[section].append(_parse_ngram_line(line, section, lineno))

    if section is None:
        raise ValueError("Missing \\data\\ header")
    if not seen_end:
        raise ValueError("Missing \\end\\ marker")
    if not declared:
        raise ValueError("No n-gram counts declared in \\data\\ header")

    order = max(declared)
    for n in range(1, order + 1):
        got = len(raw.get(n, ()))
        if got != declared.get(n, 0):
            raise ValueError(
                f"{n}-grams: header declares {declared.get(n, 0)}, "
                f"found {got}"
            )

    # Unigrams define the id space, in file order.
    words = [entry[1][0] for entry in raw.get(1, ())]
    ids = {w: i for i, w in enumerate(words)}
    probs = [dict() for _ in range(order)]
    backoffs = [dict() for _ in range(order)]

    for n in range(1, order + 1):
        entries = raw.get(n, ())
        for logprob, tokens, bow in entries:
            try:
                key = tuple(ids[t] for t in tokens)
            except KeyError as e:
                raise ValueError(
                    f"{n}-gram {' '.join(tokens)!r} uses word {e.args[0]!r} "
                    f"missing from the unigrams"
                ) from None
            probs[n - 1][key] = logprob
            if bow is not None:
                backoffs[n - 1][key] = bow
        if verbose:
            print(f"Loaded {len(entries)} {n}-grams", file=sys.stderr)

    return NgramModel(order, words, probs, backoffs)
