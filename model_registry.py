"""Registry of supported model file variants.

Every on-disk variant maps to exactly one loader. The variant is
resolved once when the file is opened, either from an explicit
``model_type`` or by sniffing the head of the file, and the
result is always an NgramModel.
"""

import gzip
import sys
from enum import Enum

from ngram_model import NgramModel, load_arpa


GZIP_MAGIC = b"\x1f\x8b"
ARPA_MAGIC = b"\\data\\"


class UnsupportedModelType(ValueError):
    """The model file (or requested type) is not a known variant."""


class ModelType(Enum):
    ARPA = "arpa"
    ARPA_GZ = "arpa.gz"


def _load_arpa(path: str, verbose: bool) -> NgramModel:
    with open(path, 'r', encoding='utf-8') as f:
        return load_arpa(f, verbose=verbose)


def _load_arpa_gz(path: str, verbose: bool) -> NgramModel:
    try:
        with gzip.open(path, 'rt', encoding='utf-8') as f:
            return load_arpa(f, verbose=verbose)
    except EOFError as e:
        raise ValueError(f"Truncated gzip model file {path!r}: {e}") from e


_LOADERS = {
    ModelType.ARPA: _load_arpa,
    ModelType.ARPA_GZ: _load_arpa_gz,
}


def detect_model_type(path: str) -> ModelType:
    """Guess the variant of *path* from its contents.

    Gzip is recognised by its magic bytes. Otherwise the file is scanned
    line by line for the ARPA \\data\\ header, since ARPA files may carry
    a free-form preamble of any length before it.
    """
    with open(path, 'rb') as f:
        if f.read(len(GZIP_MAGIC)) == GZIP_MAGIC:
            return ModelType.ARPA_GZ
        f.seek(0)
        for line in f:
            if line.strip() == ARPA_MAGIC:
                return ModelType.ARPA
    raise UnsupportedModelType(
        f"Unrecognised model file {path!r} "
        f"(expected one of: {', '.join(t.value for t in ModelType)})"
    )


def resolve_model_type(model_type) -> ModelType:
    """Turn a ModelType, its string value, or None into a ModelType.

    None is passed through unchanged so the caller can fall back to
    detection.
    """
    if model_type is None or isinstance(model_type, ModelType):
        return model_type
    try:
        return ModelType(model_type)
    except ValueError:
        raise UnsupportedModelType(
            f"Model type {model_type!r} is not supported "
            f"(expected one of: {', '.join(t.value for t in ModelType)})"
        ) from None


def load_model(path: str, model_type=None,
               verbose: bool = False) -> tuple[ModelType, NgramModel]:
    """Load a model file.

    Args:
        path: Path to the model file.
        model_type: ModelType or its string value; detected when None.
        verbose: Print loading progress to stderr.

    Returns:
        (resolved ModelType, loaded NgramModel)
    """
    resolved = resolve_model_type(model_type)
    if resolved is None:
        resolved = detect_model_type(path)

    if verbose:
        print(f"Loading {resolved.value} model: {path}", file=sys.stderr)
    model = _LOADERS[resolved](path, verbose)
    if verbose:
        print(
            f"Order: {model.order}, vocab_size: {model.vocab_size()}",
            file=sys.stderr,
        )
    return resolved, model
