"""Data models for papers, users and originality reports."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CitationStyle(str, enum.Enum):
    IEEE = "ieee"
    APA = "apa"
    MLA = "mla"
    CHICAGO = "chicago"
    HARVARD = "harvard"

    @property
    def label(self) -> str:
        return _STYLE_INFO[self][0]

    @property
    def description(self) -> str:
        return _STYLE_INFO[self][1]

    @property
    def reference_format(self) -> str:
        """Example reference entry shown to the model in the prompt."""
        return _STYLE_INFO[self][2]


_STYLE_INFO: dict[CitationStyle, tuple[str, str, str]] = {
    CitationStyle.IEEE: (
        "IEEE",
        "Institute of Electrical and Electronics Engineers",
        "Author Name, 'Paper Title,' Journal Name, vol. X, no. Y, pp. Z, Month Year.",
    ),
    CitationStyle.APA: (
        "APA",
        "American Psychological Association",
        "Author, A. A., & Author, B. B. (Year). Title of article. Journal Name, Volume(Issue), pages.",
    ),
    CitationStyle.MLA: (
        "MLA",
        "Modern Language Association",
        'Author Last, First. "Title of Article." Journal Name, vol. X, no. Y, Year, pp. Z.',
    ),
    CitationStyle.CHICAGO: (
        "Chicago",
        "Chicago Manual of Style",
        'Author Last, First. "Title of Article." Journal Name Volume, no. Issue (Year): pages.',
    ),
    CitationStyle.HARVARD: (
        "Harvard",
        "Harvard Referencing Style",
        "Author, A. (Year) 'Title of article', Journal Name, Volume(Issue), pp. pages.",
    ),
}


class RiskStatus(str, enum.Enum):
    LOW = "low-risk"
    MEDIUM = "medium-risk"
    HIGH = "high-risk"


# --- Papers ---

PAPER_SECTIONS: tuple[str, ...] = (
    "introduction",
    "methodology",
    "results",
    "discussion",
    "conclusion",
)

REQUIRED_PAPER_FIELDS: tuple[str, ...] = (
    "title",
    "abstract",
    "keywords",
    *PAPER_SECTIONS,
    "references",
)


class GeneratedPaper(BaseModel):
    """A paper as produced by the model and shown in the preview."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    abstract: str
    keywords: list[str] = Field(default_factory=list)
    introduction: str
    methodology: str
    results: str
    discussion: str
    conclusion: str
    references: list[str] = Field(default_factory=list)
    word_count: int = Field(default=0, alias="wordCount")


class PaperCreate(BaseModel):
    """Payload for saving a paper to the current user's history."""

    title: str
    topic: str
    abstract: str
    keywords: list[str]
    introduction: str
    methodology: str
    results: str
    discussion: str
    conclusion: str
    references: list[str]
    word_count: int


class SavedPaper(BaseModel):
    """A paper record as stored in the history table."""

    id: Optional[str] = None
    user_id: str
    title: str
    topic: str
    abstract: str
    keywords: list[str] = Field(default_factory=list)
    introduction: str
    methodology: str
    results: str
    discussion: str
    conclusion: str
    references: list[str] = Field(default_factory=list)
    word_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_generated(cls, paper: GeneratedPaper, user_id: str, topic: str) -> SavedPaper:
        return cls(
            user_id=user_id,
            topic=topic,
            **paper.model_dump(exclude={"word_count"}),
            word_count=paper.word_count,
        )

    def to_generated(self) -> GeneratedPaper:
        return GeneratedPaper(
            **self.model_dump(include=set(REQUIRED_PAPER_FIELDS)),
            word_count=self.word_count,
        )


class PaperPage(BaseModel):
    """One page of a user's paper history."""

    papers: list[SavedPaper] = Field(default_factory=list)
    count: int = 0
    limit: int = 50
    offset: int = 0


# --- Originality ---


class OriginalityMatch(BaseModel):
    text: str
    similarity: int


class OriginalityReport(BaseModel):
    """Result of an originality check. Produced per call, never stored."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    score: int
    status: RiskStatus
    matches: list[OriginalityMatch] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    analyzed_word_count: int = Field(default=0, alias="analyzedWordCount")


# --- Users ---


class User(BaseModel):
    id: Optional[str] = None
    email: str
    full_name: Optional[str] = None
    created_at: Optional[datetime] = None


class LLMUsageRecord(BaseModel):
    """Record of an LLM API call for cost tracking."""

    id: Optional[str] = None
    model: str
    task_type: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    latency_ms: int = 0
    success: bool = True
    created_at: Optional[datetime] = None
