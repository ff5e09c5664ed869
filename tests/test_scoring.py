"""Scoring rule tests."""

import pytest

from sitemap_seo.analysis.models import ImageAnalysis, PageAnalysis, SeoIssue, Severity
from sitemap_seo.analysis.scoring import (
    ScoringThresholds,
    analyze_description,
    analyze_images,
    analyze_load_time,
    analyze_title,
    calculate_seo_score,
    summarize,
)


def _issue(severity: Severity) -> SeoIssue:
    return SeoIssue(severity=severity, message="x")


# --- title ---


def test_missing_title_is_error():
    result = analyze_title("")
    assert not result.is_optimal
    assert result.length == 0
    assert [(i.severity, i.message) for i in result.issues] == [(Severity.ERROR, "Missing title tag")]


def test_short_title_is_warning():
    result = analyze_title("x" * 20)
    assert result.issues[0].severity is Severity.WARNING
    assert result.issues[0].message == "Title tag too short"
    assert result.issues[0].details == "Title should be at least 30 characters. Current length: 20"


def test_long_title_is_warning():
    result = analyze_title("x" * 61)
    assert result.issues[0].message == "Title tag too long"
    assert "61" in result.issues[0].details


@pytest.mark.parametrize("length", [30, 45, 60])
def test_title_in_range_is_optimal(length):
    result = analyze_title("x" * length)
    assert result.is_optimal
    assert result.issues == []
    assert result.length == length


def test_title_optimal_exactly_inside_bounds():
    for length in range(0, 101):
        result = analyze_title("x" * length)
        assert result.is_optimal == (30 <= length <= 60), length
        assert len(result.issues) == (0 if result.is_optimal else 1)


def test_custom_title_thresholds():
    thresholds = ScoringThresholds(title_min=5, title_max=10)
    assert analyze_title("hello", thresholds).is_optimal
    assert not analyze_title("hello world", thresholds).is_optimal


# --- description ---


def test_missing_description_is_error():
    result = analyze_description("")
    assert result.issues[0].severity is Severity.ERROR
    assert result.issues[0].message == "Missing meta description"


def test_short_description_is_warning():
    result = analyze_description("x" * 119)
    assert result.issues[0].severity is Severity.WARNING
    assert result.issues[0].message == "Meta description too short"


def test_long_description_is_warning():
    result = analyze_description("x" * 156)
    assert result.issues[0].message == "Meta description too long"
    assert result.issues[0].details == "Description should be no more than 155 characters. Current length: 156"


def test_description_bounds_inclusive():
    assert analyze_description("x" * 120).is_optimal
    assert analyze_description("x" * 155).is_optimal


# --- load time ---


def test_very_slow_load_is_error():
    result = analyze_load_time(6000)
    assert [(i.severity, i.message) for i in result.issues] == [(Severity.ERROR, "Very slow load time")]
    assert "6000ms" in result.issues[0].details
    assert "5000ms" in result.issues[0].details


def test_slow_load_is_warning():
    result = analyze_load_time(4000)
    assert [(i.severity, i.message) for i in result.issues] == [(Severity.WARNING, "Slow load time")]
    assert "3000ms" in result.issues[0].details


@pytest.mark.parametrize("load_time_ms", [0, 250.5, 3000])
def test_fast_load_has_no_issues(load_time_ms):
    result = analyze_load_time(load_time_ms)
    assert result.issues == []
    assert result.load_time_ms == load_time_ms


def test_load_time_exactly_at_error_limit_is_warning():
    assert analyze_load_time(5000).issues[0].severity is Severity.WARNING


# --- images ---


def test_images_missing_alt_produce_one_warning():
    images = [
        ImageAnalysis(src="/a.png", has_alt=False),
        ImageAnalysis(src="/b.png", has_alt=True, alt_text="b"),
        ImageAnalysis(src="/c.png", has_alt=False),
    ]
    issues = analyze_images(images)
    assert len(issues) == 1
    assert issues[0].severity is Severity.WARNING
    assert issues[0].message == "2 images are missing alt text"


def test_empty_alt_counts_as_present():
    assert analyze_images([ImageAnalysis(src="/a.png", has_alt=True, alt_text="")]) == []


def test_no_images_no_issues():
    assert analyze_images([]) == []


# --- score ---


def test_score_is_100_without_issues():
    assert calculate_seo_score([]) == 100


def test_score_penalties():
    assert calculate_seo_score([_issue(Severity.ERROR)]) == 80
    assert calculate_seo_score([_issue(Severity.WARNING)]) == 95
    assert calculate_seo_score([_issue(Severity.ERROR), _issue(Severity.WARNING)]) == 75


def test_score_clamped_at_zero():
    assert calculate_seo_score([_issue(Severity.ERROR)] * 10) == 0


def test_adding_issues_never_raises_score():
    issues: list[SeoIssue] = []
    previous = calculate_seo_score(issues)
    for severity in [Severity.WARNING, Severity.ERROR] * 6:
        issues.append(_issue(severity))
        score = calculate_seo_score(issues)
        assert 0 <= score <= previous
        previous = score


# --- summary ---


def test_summarize_counts_and_average():
    pages = [
        PageAnalysis(url="https://a.com/1", score=100),
        PageAnalysis(
            url="https://a.com/2",
            score=75,
            issues=[_issue(Severity.ERROR), _issue(Severity.WARNING)],
        ),
        PageAnalysis(url="https://a.com/3", score=90, issues=[_issue(Severity.WARNING)] * 2),
    ]
    summary = summarize(pages)
    assert summary.total_pages == 3
    assert summary.critical_issues == 1
    assert summary.warnings == 3
    assert summary.average_score == pytest.approx(265 / 3)


def test_summarize_empty():
    summary = summarize([])
    assert summary.total_pages == 0
    assert summary.average_score == 0
