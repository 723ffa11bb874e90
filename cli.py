#!/usr/bin/env python3
"""Command-line interface for N-gram next-word prediction.

Loads a model file (type detected from the file header unless given),
feeds the context words and prints the top-k continuations.
"""

import argparse
import sys
import time

from model_registry import ModelType, load_model
from predictor import (
    DEFAULT_K,
    DEFAULT_OOV_POLICY,
    DEFAULT_TIE_BREAK,
    NgramPredictor,
    OOVPolicy,
    OutOfVocabularyError,
    TieBreak,
)
from utils import format_counts, format_predictions


def cmd_predict(args):
    verbose = not args.quiet
    start = time.time()
    _, model = load_model(args.model, model_type=args.model_type,
                          verbose=verbose)
    predictor = NgramPredictor(
        model,
        oov_policy=args.oov_policy,
        tie_break=args.tie_break,
    )
    if verbose:
        print(f"Load time: {time.time() - start:.2f}s", file=sys.stderr)

    state = predictor.new_state()
    for word in args.context:
        if predictor.feed(state, word) is None and verbose:
            print(f"Skipping out-of-vocabulary word: {word!r}",
                  file=sys.stderr)

    best = predictor.predict(state, args.k)
    print(format_predictions(args.context, best, args.k))


def cmd_info(args):
    model_type, model = load_model(args.model, model_type=args.model_type,
                                   verbose=not args.quiet)
    print(f"Type: {model_type.value}")
    print(f"Order: {model.order}")
    print(f"Vocabulary: {model.vocab_size()} words")
    print(f"N-grams: {format_counts(model.ngram_counts())}")


def _add_model_args(parser):
    """Add model loading arguments to a parser."""
    parser.add_argument("model", help="Model file (ARPA, optionally gzipped)")
    parser.add_argument(
        "--model-type", choices=[t.value for t in ModelType], default=None,
        help="Model file type (default: detect from file header)",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true",
        help="Suppress progress output on stderr",
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        description=(
            "Top-k next-word prediction from a backoff N-gram model."
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # predict
    p_pred = sub.add_parser(
        "predict",
        help="Predict the next word after a context",
    )
    _add_model_args(p_pred)
    p_pred.add_argument("context", nargs="+", help="Context words")
    p_pred.add_argument(
        "-k", type=int, default=DEFAULT_K,
        help=f"How many suggestions (default: {DEFAULT_K})",
    )
    p_pred.add_argument(
        "--oov-policy", choices=[p.value for p in OOVPolicy],
        default=DEFAULT_OOV_POLICY.value,
        help=f"Handling of unknown context words "
             f"(default: {DEFAULT_OOV_POLICY.value})",
    )
    p_pred.add_argument(
        "--tie-break", choices=[t.value for t in TieBreak],
        default=DEFAULT_TIE_BREAK.value,
        help=f"Order of equally likely predictions "
             f"(default: {DEFAULT_TIE_BREAK.value})",
    )
    p_pred.set_defaults(func=cmd_predict)

    # info
    p_info = sub.add_parser(
        "info",
        help="Show model type, order and sizes",
    )
    _add_model_args(p_info)
    p_info.set_defaults(func=cmd_info)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except (ValueError, OutOfVocabularyError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
