"""Token-matching relevance used where Postgres full-text search is unavailable."""


def tokenize(query: str) -> list[str]:
    """Lowercase, whitespace-split query tokens."""
    return [token.strip() for token in query.lower().split() if token.strip()]


def score_text(tokens: list[str], text: str | None) -> float:
    """Count how many query tokens appear as substrings of ``text``.

    Scoring strategy:
    - Text is compared lowercase
    - Each distinct token counts once, however often it appears
    - A score of 0 means "no match"

    Args:
        tokens: Output of :func:`tokenize`
        text: Document text (None counts as empty)

    Returns:
        Match count as a float relevance score
    """
    if not text:
        return 0.0

    text_lower = text.lower()
    return float(sum(1 for token in dict.fromkeys(tokens) if token in text_lower))
