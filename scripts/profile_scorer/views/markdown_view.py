#------------------------------------------------------------
#                      markdown_view.py
#             Renders markdown blocks for scores
#               and GitHub developer analyses.

from typing import List
from ..models import (
    ActivityWeek,
    DeveloperAnalysis,
    LanguageStat,
    Recommendation,
    RepositoryCategory,
    UnifiedScore,
)

NO_LANGUAGE_DATA_MESSAGE = "_No language data available yet._"
NO_CATEGORY_DATA_MESSAGE = "_No active repositories to categorize._"
NO_RECOMMENDATIONS_MESSAGE = "_No recommendations right now._"
NO_ITEMS_MESSAGE = "_None identified._"

OVERALL_SCORE_TEMPLATE = "**Developer Score:** {overall}/100 (GitHub {github}/100, LeetCode {leetcode}/100)"
READINESS_TEMPLATE = "**Interview Readiness:** {overall}/100 - {level}"
BALANCE_TEMPLATE = "**Balance:** {balance}/100"
SUBSCORE_HEADER = "| Area | Score |\n| --- | ---: |"
SUBSCORE_ROW_TEMPLATE = "| {label} | {score} |"
BULLET_TEMPLATE = "- {item}"
RECOMMENDATION_TEMPLATE = "- **[{priority}] {action}** ({category}) - {description}"
HEADING_TEMPLATE = "### {title}"
LANGUAGE_LINE_TEMPLATE = "- **{language}:** {percent:.1f}% (proficiency {proficiency:.0f})"
CATEGORY_LINE_TEMPLATE = "- **{category}:** {count} repo{plural} ({percent:.1f}%)"
CLASSIFICATION_TEMPLATE = "**Role:** {role} | **Experience:** {experience} | **Confidence:** {confidence:.0f}%"
IMPACT_TEMPLATE = "**Stars:** {stars} | **Forks:** {forks} | **Reach:** {reach} | **Community impact:** {impact:.0f}/100"
ACTIVITY_TEMPLATE = "**Last 52 weeks:** {commits} contributions, busiest week of {busiest} starting {busiest_date}"
NO_ACTIVITY_MESSAGE = "**Last 52 weeks:** no recorded activity"

GITHUB_SUBSCORE_LABELS = [
    ("repository", "Repositories"),
    ("language", "Languages"),
    ("collaboration", "Collaboration"),
    ("complexity", "Complexity"),
    ("activity", "Activity"),
]
LEETCODE_SUBSCORE_LABELS = [
    ("problem_solving", "Problem solving"),
    ("contest", "Contests"),
    ("consistency", "Consistency"),
    ("difficulty", "Difficulty"),
]

def _render_bullets(items: List[str]) -> str:
    if not items:
        return NO_ITEMS_MESSAGE
    return "\n".join(BULLET_TEMPLATE.format(item=item) for item in items)

def render_recommendations(recommendations: List[Recommendation]) -> str:
    if not recommendations:
        return NO_RECOMMENDATIONS_MESSAGE
    return "\n".join(
        RECOMMENDATION_TEMPLATE.format(
            priority=item.priority,
            action=item.action,
            category=item.category,
            description=item.description,
        )
        for item in recommendations
    )

# This function does render the unified score summary block.
# It lists sub-scores, strengths, weaknesses, and recommendations.
def render_score_summary(score: UnifiedScore) -> str:
    rows = [SUBSCORE_HEADER]
    for field, label in GITHUB_SUBSCORE_LABELS:
        rows.append(SUBSCORE_ROW_TEMPLATE.format(label=f"GitHub {label.lower()}", score=getattr(score.github, field)))
    for field, label in LEETCODE_SUBSCORE_LABELS:
        rows.append(SUBSCORE_ROW_TEMPLATE.format(label=f"LeetCode {label.lower()}", score=getattr(score.leetcode, field)))

    readiness = score.interview_readiness
    blocks = [
        OVERALL_SCORE_TEMPLATE.format(
            overall=score.overall,
            github=score.github.overall,
            leetcode=score.leetcode.overall,
        ),
        READINESS_TEMPLATE.format(overall=readiness.overall, level=readiness.readiness_level),
        BALANCE_TEMPLATE.format(balance=score.breakdown.balance_score),
        "\n".join(rows),
        HEADING_TEMPLATE.format(title="Strengths"),
        _render_bullets(score.breakdown.strengths),
        HEADING_TEMPLATE.format(title="Areas to improve"),
        _render_bullets(score.breakdown.weaknesses),
        HEADING_TEMPLATE.format(title="Recommendations"),
        render_recommendations(score.recommendations),
    ]
    return "\n\n".join(blocks)

def render_language_stats(language_stats: List[LanguageStat]) -> str:
    if not language_stats:
        return NO_LANGUAGE_DATA_MESSAGE
    return "\n".join(
        LANGUAGE_LINE_TEMPLATE.format(
            language=stat.language,
            percent=stat.percentage,
            proficiency=stat.proficiency,
        )
        for stat in language_stats
    )

def render_categories(categories: List[RepositoryCategory]) -> str:
    if not categories:
        return NO_CATEGORY_DATA_MESSAGE
    return "\n".join(
        CATEGORY_LINE_TEMPLATE.format(
            category=category.category,
            count=category.count,
            plural="" if category.count == 1 else "s",
            percent=category.percentage,
        )
        for category in categories
    )

# This function does summarize a year of weekly activity in one line.
def render_activity_summary(weeks: List[ActivityWeek]) -> str:
    total = sum(week.commits for week in weeks)
    if not total:
        return NO_ACTIVITY_MESSAGE
    busiest = max(weeks, key=lambda week: week.commits)
    return ACTIVITY_TEMPLATE.format(commits=total, busiest=busiest.commits, busiest_date=busiest.date)

# This function does render the detailed GitHub analysis block.
# It covers classification, impact, activity, languages, and categories.
def render_analysis(analysis: DeveloperAnalysis) -> str:
    classification = analysis.developer_classification
    impact = analysis.impact_metrics
    blocks = [
        CLASSIFICATION_TEMPLATE.format(
            role=classification.primary_role,
            experience=classification.experience,
            confidence=classification.confidence,
        ),
        IMPACT_TEMPLATE.format(
            stars=impact.total_stars,
            forks=impact.total_forks,
            reach=impact.project_reach,
            impact=impact.community_impact,
        ),
        render_activity_summary(analysis.activity_patterns),
        HEADING_TEMPLATE.format(title="Languages"),
        render_language_stats(analysis.language_stats),
        HEADING_TEMPLATE.format(title="Project categories"),
        render_categories(analysis.repository_categories),
    ]
    return "\n\n".join(blocks)
