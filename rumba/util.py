"""Small text utilities."""


def normalize_uri(text: str) -> str:
    """Lower-case a document URI and strip surrounding whitespace."""
    return text.lower().strip()