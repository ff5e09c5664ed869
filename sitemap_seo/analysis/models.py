"""Page analysis result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, computed_field


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class SeoIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: Severity
    message: str
    details: str | None = None


class FieldAnalysis(BaseModel):
    """Shared shape for the title and meta description checks."""

    model_config = ConfigDict(frozen=True)

    text: str = ""
    length: int = 0
    issues: list[SeoIssue] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_optimal(self) -> bool:
        return not self.issues


class ImageAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    src: str
    has_alt: bool
    alt_text: str | None = None
    width: int | None = None
    height: int | None = None


class PerformanceAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    load_time_ms: float = 0.0
    issues: list[SeoIssue] = []


class PageAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    title: FieldAnalysis = FieldAnalysis()
    description: FieldAnalysis = FieldAnalysis()
    performance: PerformanceAnalysis = PerformanceAnalysis()
    images: list[ImageAnalysis] = []
    score: int = 0
    issues: list[SeoIssue] = []


class AnalysisSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_pages: int = 0
    critical_issues: int = 0
    warnings: int = 0
    average_score: float = 0.0


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    pages: list[PageAnalysis] = []
    summary: AnalysisSummary = AnalysisSummary()
