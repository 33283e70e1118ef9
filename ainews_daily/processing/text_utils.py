"""Text processing utilities for AI News Daily."""

import re
from unicodedata import combining, normalize

# Excerpts that carry no information about the item
PLACEHOLDER_PATTERNS = [
    re.compile(r"^\[?comments?\]?$"),
    re.compile(r"^\[?link\]?$"),
    re.compile(r"^article url:"),
    re.compile(r"^comments url:"),
    re.compile(r"submitted by\s+/?u/"),
    re.compile(r"^(read|continue reading|read the full|click here|learn more)\b"),
    re.compile(r"^no (description|summary|abstract)"),
    re.compile(r"^the post .* appeared first on"),
]

BARE_URL = re.compile(r"^(https?://|www\.)\S+$")

MIN_EXCERPT_LENGTH = 40


def clean_html_text(html_text: str) -> str:
    """Clean HTML text content.

    Args:
        html_text: HTML text

    Returns:
        Cleaned plain text
    """
    if not html_text:
        return ""

    text = re.sub(r'<[^>]+>', ' ', html_text)

    html_entities = {
        '&amp;': '&',
        '&lt;': '<',
        '&gt;': '>',
        '&quot;': '"',
        '&#39;': "'",
        '&#x27;': "'",
        '&nbsp;': ' ',
        '&hellip;': '…',
    }

    for entity, replacement in html_entities.items():
        text = text.replace(entity, replacement)

    return re.sub(r'\s+', ' ', text).strip()


def normalize_title(title: str) -> str:
    """Case-fold a title, replace punctuation with spaces and collapse whitespace.

    >>> normalize_title("GPT-5 Released!!")
    'gpt 5 released'
    """
    if not title:
        return ""

    title = ''.join(c for c in normalize('NFKD', title) if not combining(c)).lower()
    title = re.sub(r'[^a-z0-9\s]', ' ', title)
    return re.sub(r'\s+', ' ', title).strip()


def fold_plural(token: str) -> str:
    """Strip a simple plural ``s`` so singular and plural forms compare equal."""
    if len(token) > 3 and token.endswith('s') and not token.endswith('ss'):
        return token[:-1]
    return token


def title_tokens(title: str) -> list[str]:
    """Normalized, plural-folded title tokens in original order."""
    return [fold_plural(token) for token in normalize_title(title).split()]


def title_token_set(title: str) -> set[str]:
    """Every normalized title token, version numbers and short words included."""
    return set(title_tokens(title))


def jaccard_similarity(first: set[str], second: set[str]) -> float:
    """Intersection over union of two token sets; 0.0 when either is empty."""
    if not first or not second:
        return 0.0
    return len(first & second) / len(first | second)


def title_similarity(title1: str, title2: str) -> float:
    """Calculate title similarity using the Jaccard index of title token sets.

    Args:
        title1: First title
        title2: Second title

    Returns:
        Similarity score (0.0 to 1.0)
    """
    return jaccard_similarity(title_token_set(title1), title_token_set(title2))


def is_boilerplate(excerpt: str | None) -> bool:
    """Check whether an excerpt is too thin to summarize.

    An excerpt is boilerplate when it is missing, shorter than
    ``MIN_EXCERPT_LENGTH`` after cleaning, a bare URL, or a known feed
    placeholder such as ``Comments`` or ``Article URL: ...``.
    """
    text = clean_html_text(excerpt or "")
    if len(text) < MIN_EXCERPT_LENGTH:
        return True

    lowered = text.lower()
    if BARE_URL.match(lowered):
        return True

    return any(pattern.search(lowered) for pattern in PLACEHOLDER_PATTERNS)
