"""Data models for the classify_articles pipeline stage."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

KEYWORD_PREFILTER_MODEL = "keyword-prefilter"
ERROR_FALLBACK_MODEL = "error-fallback"


@dataclass
class TopicConfig:
    """Taxonomy entry used for prefiltering and classification."""
    slug: str
    name: str
    keywords: list[str] = field(default_factory=list)
    enabled: bool = True


class AnalysisOutput(BaseModel):
    """Structured classification/summary result, validated before it is stored."""

    model_config = ConfigDict(populate_by_name=True)

    relevant: bool
    topics: list[str]
    importance: int = Field(ge=0, le=100)
    summary_bullets: list[str] = Field(alias="summaryBullets", min_length=2, max_length=4)
    why_it_matters: str = Field(alias="whyItMatters")


@dataclass
class AnalysisRecord:
    """Analysis ready to persist, including the identity of what produced it."""
    relevant: bool
    topics: list[str]
    importance: int
    summary_bullets: list[str]
    why_it_matters: str
    model_version: str

    @classmethod
    def from_output(cls, output: AnalysisOutput, model_version: str) -> "AnalysisRecord":
        return cls(
            relevant=output.relevant,
            topics=list(output.topics),
            importance=output.importance,
            summary_bullets=list(output.summary_bullets),
            why_it_matters=output.why_it_matters,
            model_version=model_version,
        )

    @classmethod
    def keyword_prefilter(cls) -> "AnalysisRecord":
        return cls(
            relevant=False,
            topics=[],
            importance=0,
            summary_bullets=[],
            why_it_matters="Article did not match any ESG topic keywords.",
            model_version=KEYWORD_PREFILTER_MODEL,
        )

    @classmethod
    def error_fallback(cls, matched_topics: list[str]) -> "AnalysisRecord":
        return cls(
            relevant=False,
            topics=list(matched_topics),
            importance=50,
            summary_bullets=["LLM analysis failed - matched by keywords only"],
            why_it_matters="Analysis failed. This article matched ESG keywords and may be relevant.",
            model_version=ERROR_FALLBACK_MODEL,
        )
