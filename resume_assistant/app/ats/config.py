from resume_assistant.app.ats.models import SubScoreKey

SUB_SCORE_WEIGHTS: dict[SubScoreKey, float] = {
    SubScoreKey.KEYWORD_EXACT: 0.22,
    SubScoreKey.KEYWORD_PHRASE: 0.12,
    SubScoreKey.SEMANTIC_RELEVANCE: 0.16,
    SubScoreKey.TITLE_ALIGNMENT: 0.10,
    SubScoreKey.METRICS_PRESENCE: 0.10,
    SubScoreKey.SECTION_COMPLETENESS: 0.08,
    SubScoreKey.FORMAT_PARSEABILITY: 0.14,
    SubScoreKey.RECENCY_FIT: 0.08,
}

# Penalties applied to the weighted score.
NO_METRICS_THRESHOLD = 10
NO_METRICS_PENALTY = 5
TITLE_MISMATCH_THRESHOLD = 40
TITLE_MISMATCH_PENALTY = 3
POOR_FORMAT_THRESHOLD = 50
POOR_FORMAT_PENALTY = 10
KEYWORD_STUFFING_GAP = 30
KEYWORD_STUFFING_PENALTY = 5

# Keyword matching.
MIN_KEYWORD_LENGTH = 3
MUST_HAVE_WEIGHT = 2
NICE_TO_HAVE_WEIGHT = 1
NGRAM_SIZES = (3, 4, 5, 6)
PHRASE_SIMILARITY_THRESHOLD = 0.7
MAX_MUST_HAVE_FALLBACK = 20

# Semantic relevance.
SEMANTIC_TOP_SECTIONS = 5
SEMANTIC_MIN_SECTION_LENGTH = 30
SEMANTIC_KEYWORD_FLOOR = 40
SEMANTIC_CAP = 70

# Recency.
RECENCY_GRACE_YEARS = 3
RECENCY_DECAY_PER_YEAR = 0.1
RECENCY_MAX_DECAY = 0.5

# Summary length bounds, in words.
SUMMARY_MIN_WORDS = 50
SUMMARY_MAX_WORDS = 150

REQUIRED_SECTIONS = ("summary", "skills", "experience", "education")

METRIC_PATTERNS = (
    r"\d+%",
    r"\$[\d,]+",
    r"#\d+",
    r"\d+x\b",
    r"\d+[KMB]\b",
)

# Format parseability penalties, subtracted from 100.
FORMAT_PENALTIES = {
    "multi_column": 15,
    "tables": 20,
    "images": 10,
    "headers_footers": 5,
    "nonstandard_fonts": 5,
    "odd_glyphs": 5,
}
ATS_SAFE_TEMPLATE_HINTS = ("ats", "minimal", "simple")
MULTI_COLUMN_LAYOUTS = ("two-column", "multi-column", "sidebar")

# Suggestion generation.
URGENT_THRESHOLD = 50
NORMAL_THRESHOLD = 70
MIN_SUGGESTION_GAIN = 3
MAX_SUGGESTIONS = 10

STOPWORDS = frozenset(
    """
    a an and are as at be but by can for from has have in into is it its of on
    or our that the their this to was we will with you your who what when where
    which while about above after all also any both each few more most other
    some such than then there these they those through under until very would
    should could must may might shall been being did does doing had having he
    her him his how i if me my no nor not only own same she so too us were
    experience years year strong knowledge ability skills working proficiency
    familiarity understanding excellent good required preferred including
    """.split()
)
