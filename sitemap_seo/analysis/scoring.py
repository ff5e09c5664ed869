"""SEO scoring rules — pure functions, no I/O."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .models import (
    AnalysisSummary,
    FieldAnalysis,
    ImageAnalysis,
    PageAnalysis,
    PerformanceAnalysis,
    SeoIssue,
    Severity,
)

ERROR_PENALTY = 20
WARNING_PENALTY = 5


@dataclass(frozen=True)
class ScoringThresholds:
    """Tunable limits for the per-signal checks."""

    title_min: int = 30
    title_max: int = 60
    description_min: int = 120
    description_max: int = 155
    slow_load_ms: float = 3000.0
    very_slow_load_ms: float = 5000.0


DEFAULT_THRESHOLDS = ScoringThresholds()


def _analyze_length(
    text: str,
    *,
    min_length: int,
    max_length: int,
    missing: tuple[str, str],
    too_short: str,
    too_long: str,
    noun: str,
) -> FieldAnalysis:
    issues: list[SeoIssue] = []
    length = len(text)

    if not text:
        issues.append(SeoIssue(severity=Severity.ERROR, message=missing[0], details=missing[1]))
    elif length < min_length:
        issues.append(
            SeoIssue(
                severity=Severity.WARNING,
                message=too_short,
                details=f"{noun} should be at least {min_length} characters. Current length: {length}",
            )
        )
    elif length > max_length:
        issues.append(
            SeoIssue(
                severity=Severity.WARNING,
                message=too_long,
                details=f"{noun} should be no more than {max_length} characters. Current length: {length}",
            )
        )

    return FieldAnalysis(text=text, length=length, issues=issues)


def analyze_title(title: str, thresholds: ScoringThresholds = DEFAULT_THRESHOLDS) -> FieldAnalysis:
    """Optimal iff present and within ``[title_min, title_max]`` characters."""
    return _analyze_length(
        title,
        min_length=thresholds.title_min,
        max_length=thresholds.title_max,
        missing=("Missing title tag", "Every page should have a title tag"),
        too_short="Title tag too short",
        too_long="Title tag too long",
        noun="Title",
    )


def analyze_description(
    description: str, thresholds: ScoringThresholds = DEFAULT_THRESHOLDS
) -> FieldAnalysis:
    """Optimal iff present and within ``[description_min, description_max]`` characters."""
    return _analyze_length(
        description,
        min_length=thresholds.description_min,
        max_length=thresholds.description_max,
        missing=("Missing meta description", "Every page should have a meta description"),
        too_short="Meta description too short",
        too_long="Meta description too long",
        noun="Description",
    )


def analyze_load_time(
    load_time_ms: float, thresholds: ScoringThresholds = DEFAULT_THRESHOLDS
) -> PerformanceAnalysis:
    issues: list[SeoIssue] = []
    if load_time_ms > thresholds.very_slow_load_ms:
        issues.append(
            SeoIssue(
                severity=Severity.ERROR,
                message="Very slow load time",
                details=(
                    f"Page took {round(load_time_ms)}ms to load. "
                    f"Should be under {round(thresholds.very_slow_load_ms)}ms"
                ),
            )
        )
    elif load_time_ms > thresholds.slow_load_ms:
        issues.append(
            SeoIssue(
                severity=Severity.WARNING,
                message="Slow load time",
                details=(
                    f"Page took {round(load_time_ms)}ms to load. "
                    f"Should be under {round(thresholds.slow_load_ms)}ms"
                ),
            )
        )
    return PerformanceAnalysis(load_time_ms=load_time_ms, issues=issues)


def analyze_images(images: Sequence[ImageAnalysis]) -> list[SeoIssue]:
    """One aggregate warning when any image lacks an ``alt`` attribute."""
    missing = sum(1 for image in images if not image.has_alt)
    if not images or missing == 0:
        return []
    return [
        SeoIssue(
            severity=Severity.WARNING,
            message=f"{missing} images are missing alt text",
            details=f"{missing} of {len(images)} images have no alt attribute",
        )
    ]


def calculate_seo_score(issues: Iterable[SeoIssue]) -> int:
    """Start at 100, subtract 20 per error and 5 per warning, clamp to ``[0, 100]``."""
    score = 100
    for issue in issues:
        if issue.severity is Severity.ERROR:
            score -= ERROR_PENALTY
        elif issue.severity is Severity.WARNING:
            score -= WARNING_PENALTY
    return max(0, min(100, score))


def summarize(pages: Sequence[PageAnalysis]) -> AnalysisSummary:
    """Recompute summary statistics from the full page list."""
    if not pages:
        return AnalysisSummary()

    errors = sum(1 for page in pages for issue in page.issues if issue.severity is Severity.ERROR)
    warnings = sum(
        1 for page in pages for issue in page.issues if issue.severity is Severity.WARNING
    )
    return AnalysisSummary(
        total_pages=len(pages),
        critical_issues=errors,
        warnings=warnings,
        average_score=sum(page.score for page in pages) / len(pages),
    )
