import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

log = logging.getLogger(__name__)


class SubScoreKey(str, Enum):
    """The eight scored dimensions."""

    KEYWORD_EXACT = "keyword_exact"
    KEYWORD_PHRASE = "keyword_phrase"
    SEMANTIC_RELEVANCE = "semantic_relevance"
    TITLE_ALIGNMENT = "title_alignment"
    METRICS_PRESENCE = "metrics_presence"
    SECTION_COMPLETENESS = "section_completeness"
    FORMAT_PARSEABILITY = "format_parseability"
    RECENCY_FIT = "recency_fit"


class SuggestionCategory(str, Enum):
    """Suggestion categories, also used to route programmatic edits."""

    KEYWORDS = "keywords"
    METRICS = "metrics"
    CONTENT = "content"
    FORMATTING = "formatting"
    STRUCTURE = "structure"


def clamp_score(value: float) -> float:
    """Clamp a score into [0, 100]."""
    return max(0.0, min(100.0, float(value)))


class SubScores(BaseModel):
    """Eight sub-scores, each clamped to [0, 100]."""

    keyword_exact: float = 0
    keyword_phrase: float = 0
    semantic_relevance: float = 0
    title_alignment: float = 0
    metrics_presence: float = 0
    section_completeness: float = 0
    format_parseability: float = 0
    recency_fit: float = 0

    @field_validator("*", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> float:
        """Coerce every sub-score into the [0, 100] range."""
        if v is None:
            return 0.0
        return round(clamp_score(v), 2)


class AnalyzerResult(BaseModel):
    """Output of a single analyzer.

    Attributes:
        score (float): The sub-score, clamped to [0, 100].
        confidence (float): 0 when the analyzer failed; its weight is then redistributed.
        evidence (dict): Analyzer-specific details used to build suggestions.

    """

    score: float = 0
    confidence: float = 1.0
    evidence: dict[str, Any] = Field(default_factory=dict)

    @field_validator("score", mode="before")
    @classmethod
    def clamp(cls, v: Any) -> float:
        return clamp_score(v or 0)


class Suggestion(BaseModel):
    """An actionable improvement produced by the scoring engine.

    Keyword and metric suggestions may carry concrete parameters, which lets
    the modification applier act on them without inventing content.
    """

    id: str = ""
    category: SuggestionCategory
    text: str
    estimated_gain: int = Field(default=0, ge=0)
    targets: list[str] = Field(default_factory=list)
    quick_win: bool = False
    keywords: list[str] = Field(default_factory=list)
    metric: str | None = None
    value: str | None = None
    amendments: list[dict[str, Any]] = Field(default_factory=list)


class LanguageScore(BaseModel):
    """Keyword overlap within a single language bucket."""

    score: float = Field(default=0, ge=0, le=1)
    resume: list[str] = Field(default_factory=list)
    job: list[str] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)


class JobExtraction(BaseModel):
    """Structured data extracted from a job description."""

    title: str = ""
    must_have: list[str] = Field(default_factory=list)
    nice_to_have: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    seniority: str | None = None


class ATSReport(BaseModel):
    """The scoring engine's output.

    `recommendations` holds the suggestion texts for display; `suggestions`
    keeps the full structured suggestions.
    """

    score: int = Field(default=0, ge=0, le=100)
    subscores: SubScores = Field(default_factory=SubScores)
    missing_keywords: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)
    languages: dict[str, LanguageScore] = Field(default_factory=dict)
    degraded: bool = False


class FormatReport(BaseModel):
    """ATS safety findings about a resume's layout and content."""

    has_tables: bool = False
    has_images: bool = False
    has_headers_footers: bool = False
    has_nonstandard_fonts: bool = False
    has_odd_glyphs: bool = False
    has_multi_column: bool = False
    format_safety_score: float = 100
    issues: list[str] = Field(default_factory=list)
