"""
Pytest configuration and shared fixtures.
Adds the project root to sys.path so the top-level modules can be imported.
"""
import gzip
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from ngram_model import load_arpa  # noqa: E402


# Bigram model: "fox" is only ever followed by "jumps".
FOX_ARPA = """\
\\data\\
ngram 1=5
ngram 2=4

\\1-grams:
-0.7 the -0.2
-0.9 quick -0.2
-0.9 brown -0.2
-0.8 fox -0.3
-1.0 jumps

\\2-grams:
-0.2 the quick
-0.3 quick brown
-0.4 brown fox
-0.1 fox jumps

\\end\\
"""

# Trigram model with <s>, </s>, <unk> and a branching word "a".
TRIGRAM_ARPA = """\
some preamble text
\\data\\
ngram 1=8
ngram 2=8
ngram 3=2

\\1-grams:
-1.0 <s> -0.5
-1.2 </s>
-2.0 <unk> -0.1
-0.8 a -0.4
-1.1 cat -0.3
-1.1 dog -0.3
-1.5 sat -0.2
-1.3 ran -0.2

\\2-grams:
-0.3 <s> a -0.1
-0.6 a cat -0.2
-0.4 a dog -0.2
-0.9 a sat
-0.5 cat sat
-0.5 dog ran
-0.2 sat </s>
-0.2 ran </s>

\\3-grams:
-0.05 <s> a cat
-0.7 cat sat </s>

\\end\\
"""


@pytest.fixture
def fox_model():
    return load_arpa(FOX_ARPA.splitlines())


@pytest.fixture
def trigram_model():
    return load_arpa(TRIGRAM_ARPA.splitlines())


@pytest.fixture
def fox_arpa_path(tmp_path):
    path = tmp_path / "fox.arpa"
    path.write_text(FOX_ARPA, encoding="utf-8")
    return path


@pytest.fixture
def fox_gz_path(tmp_path):
    path = tmp_path / "fox.arpa.gz"
    with gzip.open(path, "wt", encoding="utf-8") as f:
        f.write(FOX_ARPA)
    return path


@pytest.fixture
def truncated_gz_path(tmp_path):
    data = gzip.compress(FOX_ARPA.encode("utf-8"))
    path = tmp_path / "cut.arpa.gz"
    path.write_bytes(data[:len(data) // 2])
    return path


@pytest.fixture
def long_preamble_path(tmp_path):
    # Preamble well past 4 KB before the \data\ header.
    path = tmp_path / "long.arpa"
    path.write_text("# comment line\n" * 400 + FOX_ARPA, encoding="utf-8")
    return path
