"""Formatting helpers for prediction output."""


def format_logprob(logprob: float) -> str:
    """Render a log10 probability alongside its linear value."""
    return f"logP={logprob:.4f}  p={10.0 ** logprob:.4g}"


def format_predictions(context: list[str], predictions, k: int) -> str:
    """Render predictions the way the CLI prints them.

    Args:
        context: Words that were fed, in order.
        predictions: Best-first sequence of (word, logprob) pairs.
        k: Number of predictions that were requested.

    Returns:
        Multi-line string without a trailing newline.
    """
    lines = ["Context:" + "".join(f" {w}" for w in context)]
    lines.append(f"Top-{k} predictions")
    if not predictions:
        lines.append("  (none)")
    for word, logprob in predictions:
        lines.append(f"  {word}\t{format_logprob(logprob)}")
    return "\n".join(lines)


def format_counts(counts: list[int]) -> str:
    """Render per-order n-gram counts, e.g. ``1-grams: 5, 2-grams: 4``."""
    return ", ".join(f"{n}-grams: {c}" for n, c in enumerate(counts, 1))
