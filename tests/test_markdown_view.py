from profile_scorer.models import (
    ActivityWeek,
    GitHubScore,
    InterviewReadiness,
    LanguageStat,
    LeetCodeScore,
    Recommendation,
    RepositoryCategory,
    ScoreBreakdown,
    UnifiedScore,
)
from profile_scorer.views.markdown_view import (
    NO_ACTIVITY_MESSAGE,
    NO_RECOMMENDATIONS_MESSAGE,
    render_activity_summary,
    render_categories,
    render_language_stats,
    render_recommendations,
    render_score_summary,
)


def unified_score():
    return UnifiedScore(
        overall=64,
        github=GitHubScore(overall=70, repository=80, language=60, collaboration=55, complexity=65, activity=90),
        leetcode=LeetCodeScore(overall=55, problem_solving=50, contest=30, consistency=70, difficulty=60),
        breakdown=ScoreBreakdown(
            strengths=[],
            weaknesses=["Limited competitive programming experience"],
            balance_score=85,
            skill_distribution={},
        ),
        recommendations=[Recommendation("GitHub", "Medium", "Increase community engagement", "Contribute upstream")],
        interview_readiness=InterviewReadiness(
            overall=62, algorithm=56, system_design=61, coding=67, behavioral=65, readiness_level="Basic - Significant preparation needed"
        ),
    )


def test_score_summary_lists_scores_and_guidance() -> None:
    summary = render_score_summary(unified_score())

    assert "**Developer Score:** 64/100 (GitHub 70/100, LeetCode 55/100)" in summary
    assert "**Interview Readiness:** 62/100 - Basic - Significant preparation needed" in summary
    assert "| GitHub activity | 90 |" in summary
    assert "| LeetCode contests | 30 |" in summary
    assert "- Limited competitive programming experience" in summary
    assert "_None identified._" in summary
    assert "- **[Medium] Increase community engagement** (GitHub) - Contribute upstream" in summary


def test_empty_recommendations_message() -> None:
    assert render_recommendations([]) == NO_RECOMMENDATIONS_MESSAGE


def test_language_and_category_lines() -> None:
    languages = render_language_stats([LanguageStat("Go", 10, 62.5, "#00ADD8", proficiency=71.2)])
    assert languages == "- **Go:** 62.5% (proficiency 71)"

    categories = render_categories(
        [
            RepositoryCategory("DevOps", 1, 25.0, ["infra"], "#ef4444"),
            RepositoryCategory("Other", 3, 75.0, ["a", "b", "c"], "#6b7280"),
        ]
    )
    assert categories.splitlines() == ["- **DevOps:** 1 repo (25.0%)", "- **Other:** 3 repos (75.0%)"]


def test_activity_summary_names_busiest_week() -> None:
    weeks = [ActivityWeek("2024-01-01", commits=2), ActivityWeek("2024-01-08", commits=5), ActivityWeek("2024-01-15")]
    assert render_activity_summary(weeks) == "**Last 52 weeks:** 7 contributions, busiest week of 5 starting 2024-01-08"
    assert render_activity_summary([ActivityWeek("2024-01-01")]) == NO_ACTIVITY_MESSAGE
