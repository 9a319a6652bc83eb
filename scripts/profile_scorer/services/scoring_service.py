#------------------------------------------------------------
#                     scoring_service.py
#      Folds GitHub and LeetCode metrics into bounded,
#      weighted scores with breakdowns and guidance.

import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional
from ..config import (
    ALGORITHM_CATEGORIES,
    COMBINED_WEIGHTS,
    DEFAULT_LANGUAGE_COMPLEXITY,
    DEFAULT_READINESS_LEVEL,
    DIFFICULTY_MULTIPLIERS,
    GITHUB_DEFAULT_REPO_LIMIT,
    GITHUB_WEIGHTS,
    INTERVIEW_RECOMMENDATION_THRESHOLD,
    LANGUAGE_COMPLEXITY,
    LEETCODE_ACCEPTED_STATUS,
    LEETCODE_WEIGHTS,
    READINESS_LEVELS,
    SCORING_CONSISTENCY_WINDOW_DAYS,
    SCORING_DIFFICULTY_NORMALIZER,
    SCORING_RANK_CEILING,
    SCORING_RANK_DIVISOR,
    SCORING_RECENT_ACTIVITY_DAYS,
    SCORING_REPO_COUNT_CAP,
    SCORING_SUBMISSION_LIMIT,
)
from ..errors import ScoringError, ValidationError
from ..models import (
    ContestData,
    GitHubProfile,
    GitHubScore,
    InterviewReadiness,
    LanguageStat,
    LeetCodeScore,
    ProblemStats,
    Recommendation,
    Repository,
    ScoreBreakdown,
    Submission,
    UnifiedScore,
)
from .github_service import GitHubService, parse_timestamp
from .leetcode_service import LeetCodeService

USERNAMES_REQUIRED_MESSAGE = "Both GitHub and LeetCode usernames are required"
SCORING_FAILED_TEMPLATE = "Failed to calculate unified score: {error}"

STRENGTH_RULES = [
    ("github", "collaboration", 75, "Strong collaboration and community engagement"),
    ("github", "complexity", 80, "Excellent project complexity and architecture skills"),
    ("leetcode", "problem_solving", 80, "Outstanding problem-solving abilities"),
    ("leetcode", "contest", 70, "Strong competitive programming skills"),
    ("github", "language", 85, "Exceptional language diversity and proficiency"),
]
WEAKNESS_RULES = [
    ("github", "repository", 50, "Limited repository portfolio"),
    ("leetcode", "consistency", 60, "Inconsistent problem-solving practice"),
    ("leetcode", "contest", 40, "Limited competitive programming experience"),
    ("github", "activity", 50, "Low recent development activity"),
    ("leetcode", "difficulty", 60, "Need to tackle more challenging problems"),
]
RECOMMENDATION_RULES = [
    (
        "github", "repository", 60,
        Recommendation(
            category="GitHub",
            priority="High",
            action="Create more diverse projects",
            description="Build 3-5 new repositories showcasing different technologies and problem domains",
        ),
    ),
    (
        "leetcode", "consistency", 70,
        Recommendation(
            category="LeetCode",
            priority="High",
            action="Establish consistent practice routine",
            description="Solve at least 3-5 problems per week to improve consistency score",
        ),
    ),
    (
        "leetcode", "difficulty", 65,
        Recommendation(
            category="LeetCode",
            priority="Medium",
            action="Focus on medium and hard problems",
            description="Increase the ratio of medium/hard problems to improve difficulty score",
        ),
    ),
    (
        "github", "collaboration", 60,
        Recommendation(
            category="GitHub",
            priority="Medium",
            action="Increase community engagement",
            description="Contribute to open source projects and improve project documentation",
        ),
    ),
]
INTERVIEW_RECOMMENDATIONS = {
    "algorithm": "Focus on data structures and algorithms practice",
    "system_design": "Study system design patterns and build scalable projects",
    "coding": "Practice coding in your preferred language and improve consistency",
    "behavioral": "Prepare behavioral stories and showcase collaboration experience",
}

def _bounded(value: float) -> float:
    return max(0.0, min(value, 100.0))

def readiness_level(score: float) -> str:
    for threshold, label in READINESS_LEVELS:
        if score >= threshold:
            return label
    return DEFAULT_READINESS_LEVEL

class ScoringService:

    # This function does initialize the engine with both platform clients.
    # The clock anchors the recency windows used by activity scores.
    def __init__(
        self,
        github: GitHubService,
        leetcode: LeetCodeService,
        clock: Callable[[], float] = time.time,
        language_complexity: Optional[Dict[str, int]] = None,
    ):
        self.github = github
        self.leetcode = leetcode
        self.clock = clock
        self.language_complexity = language_complexity or dict(LANGUAGE_COMPLEXITY)

    # This function does compute the combined 60/40 developer score.
    # Missing usernames fail before any request is made.
    def calculate_unified_score(
        self,
        github_username: str,
        leetcode_username: str,
        force_refresh: bool = False,
    ) -> UnifiedScore:
        if not github_username or not leetcode_username:
            raise ValidationError(USERNAMES_REQUIRED_MESSAGE)

        try:
            github_score = self.calculate_github_score(github_username, force_refresh)
            leetcode_score = self.calculate_leetcode_score(leetcode_username, force_refresh)
        except Exception as error:
            raise ScoringError(SCORING_FAILED_TEMPLATE.format(error=error)) from error

        combined = github_score.overall * COMBINED_WEIGHTS["github"] + leetcode_score.overall * COMBINED_WEIGHTS["leetcode"]
        return UnifiedScore(
            overall=round(combined),
            github=github_score,
            leetcode=leetcode_score,
            breakdown=self.score_breakdown(github_score, leetcode_score),
            recommendations=self.recommendations(github_score, leetcode_score),
            interview_readiness=self.interview_readiness(github_score, leetcode_score),
        )

    def calculate_github_score(self, username: str, force_refresh: bool = False) -> GitHubScore:
        profile = self.github.fetch_user_profile(username, force_refresh)
        repositories = self.github.fetch_user_repositories(username, GITHUB_DEFAULT_REPO_LIMIT, force_refresh)
        language_stats = self.github.fetch_language_stats(username, force_refresh)
        return self.github_score(profile, repositories, language_stats)

    # This function does weigh the five GitHub categories into one score.
    # Every category is bounded before weighting.
    def github_score(
        self,
        profile: GitHubProfile,
        repositories: List[Repository],
        language_stats: List[LanguageStat],
    ) -> GitHubScore:
        active = [repo for repo in repositories if repo.is_active]
        scores = {
            "repository": self.repository_score(repositories),
            "language": self.language_score(language_stats),
            "collaboration": self.collaboration_score(repositories, profile),
            "complexity": self.complexity_score(repositories, language_stats),
            "activity": self.activity_score(repositories),
        }
        overall = sum(scores[name] * weight for name, weight in GITHUB_WEIGHTS.items())
        return GitHubScore(
            overall=round(overall),
            details={
                "total_repos": len(repositories),
                "active_repos": len(active),
                "total_stars": sum(repo.stargazers_count for repo in active),
                "total_forks": sum(repo.forks_count for repo in active),
                "primary_languages": [stat.language for stat in language_stats[:3]],
            },
            **{name: round(score) for name, score in scores.items()},
        )

    def calculate_leetcode_score(self, username: str, force_refresh: bool = False) -> LeetCodeScore:
        self.leetcode.fetch_user_profile(username, force_refresh)
        contest = self.leetcode.fetch_contest_data(username, force_refresh)
        problem_stats = self.leetcode.fetch_problem_stats(username, force_refresh)
        submissions = self.leetcode.fetch_recent_submissions(username, SCORING_SUBMISSION_LIMIT, force_refresh)
        return self.leetcode_score(contest, problem_stats, submissions)

    def leetcode_score(
        self,
        contest: ContestData,
        problem_stats: ProblemStats,
        submissions: List[Submission],
    ) -> LeetCodeScore:
        scores = {
            "problem_solving": self.problem_solving_score(problem_stats),
            "contest": self.contest_score(contest),
            "consistency": self.consistency_score(submissions),
            "difficulty": self.difficulty_score(problem_stats),
        }
        overall = sum(scores[name] * weight for name, weight in LEETCODE_WEIGHTS.items())
        return LeetCodeScore(
            overall=round(overall),
            details={
                "total_solved": problem_stats.total_solved,
                "contest_rating": contest.ranking.rating,
                "contests_attended": contest.ranking.attended_contests_count,
                "global_ranking": contest.ranking.global_ranking,
                "algorithm_coverage": self.algorithm_coverage(problem_stats),
            },
            **{name: round(score) for name, score in scores.items()},
        )

    # This function does score portfolio size and the share of quality repos.
    # A repo counts as quality with stars, forks, or a real description.
    def repository_score(self, repositories: List[Repository]) -> float:
        active = [repo for repo in repositories if repo.is_active]
        quality = [
            repo for repo in active
            if repo.stargazers_count > 0 or repo.forks_count > 0 or len(repo.description) > 20
        ]
        count_score = min(len(active), SCORING_REPO_COUNT_CAP) / SCORING_REPO_COUNT_CAP * 40
        quality_score = len(quality) / max(len(active), 1) * 60
        return _bounded(count_score + quality_score)

    def language_score(self, language_stats: List[LanguageStat]) -> float:
        diversity = min(len(language_stats) * 8, 40)
        proficiency = sum(
            self.language_complexity.get(stat.language, DEFAULT_LANGUAGE_COMPLEXITY) * stat.percentage / 100 * 6
            for stat in language_stats
        )
        return _bounded(diversity + proficiency)

    def collaboration_score(self, repositories: List[Repository], profile: GitHubProfile) -> float:
        active = [repo for repo in repositories if repo.is_active]
        total_stars = sum(repo.stargazers_count for repo in active)
        total_forks = sum(repo.forks_count for repo in active)
        engagement = (total_stars + total_forks) / len(active) * 2 if active else 0.0
        return _bounded(
            min(total_stars / 10, 30)
            + min(total_forks / 5, 25)
            + min(profile.followers / 10, 25)
            + min(engagement, 20)
        )

    def complexity_score(self, repositories: List[Repository], language_stats: List[LanguageStat]) -> float:
        active = [repo for repo in repositories if repo.is_active]
        if not active:
            return 0.0
        average_size = sum(repo.size for repo in active) / len(active)
        prominent = {stat.language for stat in language_stats if stat.percentage > 10}
        multi_language = sum(1 for repo in active if repo.language in prominent)
        return _bounded(
            min(average_size / 100, 30)
            + min(multi_language * 5, 35)
            + self.documentation_score(active)
        )

    def documentation_score(self, repositories: List[Repository]) -> float:
        if not repositories:
            return 0.0
        described = sum(1 for repo in repositories if len(repo.description) > 20)
        documented = sum(1 for repo in repositories if repo.has_wiki or repo.has_pages)
        return described / len(repositories) * 20 + documented / len(repositories) * 15

    # This function does reward repositories updated in the last six months.
    def activity_score(self, repositories: List[Repository]) -> float:
        active = [repo for repo in repositories if repo.is_active]
        if not active:
            return 0.0
        cutoff = datetime.fromtimestamp(self.clock(), tz=timezone.utc) - timedelta(days=SCORING_RECENT_ACTIVITY_DAYS)
        recent = 0
        for repo in active:
            updated = parse_timestamp(repo.updated_at)
            if updated and updated > cutoff:
                recent += 1
        return _bounded(min(recent * 8, 60) + recent / len(active) * 40)

    def problem_solving_score(self, problem_stats: ProblemStats) -> float:
        weighted = sum(
            stat.count * DIFFICULTY_MULTIPLIERS.get(stat.difficulty, 1)
            for stat in problem_stats.solved_stats
            if stat.difficulty != "All"
        )
        return _bounded(min(problem_stats.total_solved / 5, 40) + min(weighted / 10, 60))

    def contest_score(self, contest: ContestData) -> float:
        ranking = contest.ranking
        rank_score = 0.0
        if ranking.global_ranking > 0:
            rank_score = max(0.0, min((SCORING_RANK_CEILING - ranking.global_ranking) / SCORING_RANK_DIVISOR, 30))
        return _bounded(
            min(ranking.rating / 25, 40)
            + min(ranking.attended_contests_count * 2, 30)
            + rank_score
        )

    # This function does combine acceptance rate with recent frequency.
    def consistency_score(self, submissions: List[Submission]) -> float:
        if not submissions:
            return 0.0
        accepted = sum(1 for submission in submissions if submission.status == LEETCODE_ACCEPTED_STATUS)
        window_start = self.clock() - SCORING_CONSISTENCY_WINDOW_DAYS * 24 * 60 * 60
        recent = sum(1 for submission in submissions if submission.timestamp > window_start)
        return _bounded(accepted / len(submissions) * 60 + min(recent * 2, 40))

    def difficulty_score(self, problem_stats: ProblemStats) -> float:
        score = 0.0
        for stat in problem_stats.solved_stats:
            if stat.difficulty == "All" or stat.count <= 0:
                continue
            multiplier = DIFFICULTY_MULTIPLIERS.get(stat.difficulty, 1)
            score += min(stat.count / SCORING_DIFFICULTY_NORMALIZER, 1) * multiplier * 25

        beats = list(problem_stats.beats_stats.values())
        average_beats = sum(beats) / len(beats) if beats else 0.0
        return _bounded(score + average_beats / 100 * 25)

    def algorithm_coverage(self, problem_stats: ProblemStats) -> Dict[str, float]:
        covered = {
            tag.tag_name
            for tag in problem_stats.tag_stats
            if tag.tag_name in ALGORITHM_CATEGORIES and tag.problems_solved > 0
        }
        core = [name for name in covered if ALGORITHM_CATEGORIES[name]["core"]]
        return {
            "total": len(covered),
            "core": len(core),
            "percentage": round(len(covered) / len(ALGORITHM_CATEGORIES) * 100, 1),
        }

    def score_breakdown(self, github_score: GitHubScore, leetcode_score: LeetCodeScore) -> ScoreBreakdown:
        scores = {"github": github_score, "leetcode": leetcode_score}
        return ScoreBreakdown(
            strengths=[label for platform, field, threshold, label in STRENGTH_RULES if getattr(scores[platform], field) > threshold],
            weaknesses=[label for platform, field, threshold, label in WEAKNESS_RULES if getattr(scores[platform], field) < threshold],
            balance_score=max(100 - abs(github_score.overall - leetcode_score.overall), 0),
            skill_distribution={
                "implementation": github_score.overall,
                "problem_solving": leetcode_score.overall,
                "collaboration": github_score.collaboration,
                "algorithms": leetcode_score.difficulty,
            },
        )

    def recommendations(self, github_score: GitHubScore, leetcode_score: LeetCodeScore) -> List[Recommendation]:
        scores = {"github": github_score, "leetcode": leetcode_score}
        return [
            Recommendation(**recommendation.to_dict())
            for platform, field, threshold, recommendation in RECOMMENDATION_RULES
            if getattr(scores[platform], field) < threshold
        ]

    # This function does blend sub-scores into interview readiness.
    # Each dimension mixes a GitHub and a LeetCode signal.
    def interview_readiness(self, github_score: GitHubScore, leetcode_score: LeetCodeScore) -> InterviewReadiness:
        dimensions = {
            "algorithm": leetcode_score.problem_solving * 0.4 + leetcode_score.difficulty * 0.6,
            "system_design": github_score.complexity * 0.6 + github_score.collaboration * 0.4,
            "coding": github_score.language * 0.3 + leetcode_score.consistency * 0.7,
            "behavioral": github_score.collaboration * 0.7 + github_score.activity * 0.3,
        }
        overall = sum(dimensions.values()) / len(dimensions)
        return InterviewReadiness(
            overall=round(overall),
            readiness_level=readiness_level(overall),
            recommendations=[
                INTERVIEW_RECOMMENDATIONS[name]
                for name, value in dimensions.items()
                if value < INTERVIEW_RECOMMENDATION_THRESHOLD
            ],
            **{name: round(value) for name, value in dimensions.items()},
        )
