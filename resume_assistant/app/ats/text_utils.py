import logging
import re

from sklearn.feature_extraction.text import TfidfVectorizer
from sklearn.metrics.pairwise import cosine_similarity

from resume_assistant.app.ats.config import MIN_KEYWORD_LENGTH, STOPWORDS

log = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9+#.\-]*[a-z0-9+#]|[a-z0-9]")
_SPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Lower-case `text` and collapse whitespace."""
    if not text:
        return ""
    return _SPACE_RE.sub(" ", text.lower()).strip()


def tokenize(text: str | None, min_length: int = MIN_KEYWORD_LENGTH) -> list[str]:
    """Split text into lower-case word tokens of at least `min_length` characters.

    Tokens keep inner `+`, `#`, `.` and `-` so that "c++", "c#", "node.js" and
    "ci-cd" survive as single tokens.

    """
    return [t for t in _WORD_RE.findall(normalize_text(text)) if len(t) >= min_length]


def content_tokens(text: str | None) -> list[str]:
    """Tokens of `text` with stopwords removed."""
    return [t for t in tokenize(text) if t not in STOPWORDS]


def ngrams(tokens: list[str], n: int) -> list[str]:
    """Space-joined n-grams over `tokens`."""
    if n <= 0 or len(tokens) < n:
        return []
    return [" ".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]


def jaccard(a: set, b: set) -> float:
    """Jaccard similarity of two sets; 0 when both are empty."""
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def tfidf_similarities(query: str, texts: list[str]) -> list[float]:
    """TF-IDF cosine similarity of each of `texts` against `query`.

    Args:
        query (str): The reference text, usually the job description.
        texts (list[str]): The texts to compare against it.

    Returns:
        list[float]: One similarity in [0, 1] per text, in input order.

    Notes:
        1. The vectorizer is fitted on the query and the texts together, using
           `content_tokens` for unigrams and bigrams.
        2. When no document has a content token the vocabulary is empty and
           every similarity is 0.

    """
    if not texts:
        return []

    vectorizer = TfidfVectorizer(
        tokenizer=content_tokens,
        lowercase=False,
        token_pattern=None,
        ngram_range=(1, 2),
    )
    try:
        matrix = vectorizer.fit_transform([query or "", *texts])
    except ValueError:
        _msg = "tfidf_similarities: empty vocabulary, returning zeros"
        log.debug(_msg)
        return [0.0] * len(texts)

    scores = cosine_similarity(matrix[1:], matrix[0:1])[:, 0]
    return [max(0.0, min(1.0, float(score))) for score in scores]


def lerp(value: float, low: float, high: float) -> float:
    """Map `value` from [low, high] onto [0, 100], clamped."""
    if high <= low:
        return 100.0 if value >= high else 0.0
    return max(0.0, min(100.0, (value - low) / (high - low) * 100))


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    return numerator / denominator if denominator else default
