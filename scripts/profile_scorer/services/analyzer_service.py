#------------------------------------------------------------
#                     analyzer_service.py
#       Derives secondary GitHub metrics: languages,
#    categories, activity, classification, and impact.

import random
import sys
import time
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional
from ..config import (
    ACTIVITY_CALENDAR_ADDITIONS_PER_CONTRIBUTION,
    ACTIVITY_CALENDAR_DELETIONS_PER_CONTRIBUTION,
    ACTIVITY_COMMIT_ADDITIONS_PER_COMMIT,
    ACTIVITY_COMMIT_DELETIONS_PER_COMMIT,
    ACTIVITY_COMMIT_REPO_CAP,
    ACTIVITY_COMMIT_REQUEST_DELAY_SECONDS,
    ACTIVITY_EVENT_ADDITIONS_RANGE,
    ACTIVITY_EVENT_DELETIONS_RANGE,
    ACTIVITY_EVENT_LIMIT,
    ACTIVITY_WEEKS,
    ANALYSIS_CACHE_METHOD,
    ANALYSIS_CACHE_SERVICE,
    ANALYSIS_DEPENDENCY_COMPLEXITY,
    ANALYSIS_FALLBACK_LANGUAGE_TOP_N,
    DEFAULT_LANGUAGE_COMPLEXITY,
    GITHUB_DEFAULT_REPO_LIMIT,
    LANGUAGE_COMPLEXITY,
    OTHER_CATEGORY,
    OTHER_CATEGORY_COLOR,
    REPOSITORY_CATEGORIES,
    language_color,
)
from ..errors import AnalysisError
from ..models import (
    ActivityEvent,
    ActivityWeek,
    AnalysisProgress,
    CollaborationMetrics,
    DeveloperAnalysis,
    DeveloperClassification,
    GitHubProfile,
    ImpactMetrics,
    LanguageStat,
    ProjectComplexity,
    Repository,
    RepositoryCategory,
)
from .cache_service import CacheStore
from .error_service import ErrorService, validate_input
from .github_service import EVENT_CREATE, EVENT_ISSUES, EVENT_PULL_REQUEST, EVENT_PUSH, GitHubService, parse_timestamp

ProgressCallback = Callable[[AnalysisProgress], None]

LANGUAGE_FALLBACK_WARNING_TEMPLATE = "WARNING: language stats unavailable for {username}, using repository sizes: {error}"
STRATEGY_FAILED_WARNING_TEMPLATE = "WARNING: activity strategy {strategy} failed for {username}: {error}"
ALL_STRATEGIES_FAILED_WARNING_TEMPLATE = "WARNING: no activity data for {username}; reporting empty weeks"
COMMIT_ACTIVITY_SKIPPED_TEMPLATE = "WARNING: skipping commit activity for {full_name}: {error}"
NO_COMMIT_ACTIVITY_MESSAGE = "No commit activity available for any repository"
GENERAL_ROLE = "General"
SINGLE_COMMIT_EVENTS = (EVENT_CREATE, EVENT_ISSUES, EVENT_PULL_REQUEST)

class ProfileAnalyzer:

    # This function does initialize the analyzer with its collaborators.
    # Sleep, randomness, and clock are injectable for deterministic tests.
    def __init__(
        self,
        github: GitHubService,
        cache: CacheStore,
        errors: ErrorService,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        language_complexity: Optional[Dict[str, int]] = None,
    ):
        self.github = github
        self.cache = cache
        self.errors = errors
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.clock = clock
        self.language_complexity = language_complexity or dict(LANGUAGE_COMPLEXITY)
        self.activity_strategies = [
            ("contribution calendar", self.activity_from_calendar),
            ("commit statistics", self.activity_from_commit_stats),
            ("recent events", self.activity_from_events),
        ]

    # This function does run one full analysis for a GitHub user.
    # Progress events go only to the callback passed for this call.
    def analyze_user(
        self,
        username: str,
        on_progress: Optional[ProgressCallback] = None,
        force_refresh: bool = False,
    ) -> DeveloperAnalysis:
        def report(stage: str, progress: int, task: str, remaining: int) -> None:
            if on_progress is not None:
                on_progress(AnalysisProgress(stage, progress, task, remaining))

        try:
            validate_input(username, "username")

            if force_refresh:
                self.cache.invalidate(ANALYSIS_CACHE_SERVICE, ANALYSIS_CACHE_METHOD, username)
            else:
                cached = self._cached_analysis(username)
                if cached is not None:
                    report("complete", 100, "Loading cached analysis", 0)
                    return cached

            report("basic", 10, "Fetching GitHub profile", 30)
            profile = self.github.fetch_user_profile(username, force_refresh)
            repositories = self.github.fetch_user_repositories(username, GITHUB_DEFAULT_REPO_LIMIT, force_refresh)

            report("basic", 30, "Analyzing languages", 25)
            language_stats = self.analyze_languages(username, repositories, force_refresh)
            categories = self.categorize_repositories(repositories)

            report("detailed", 50, "Calculating metrics", 20)
            collaboration = self.calculate_collaboration_metrics(repositories, profile)
            complexity = self.calculate_project_complexity(repositories, language_stats)

            report("detailed", 70, "Analyzing activity patterns", 15)
            activity = self.analyze_activity_patterns(username, repositories, force_refresh)

            report("advanced", 85, "Generating developer classification", 10)
            classification = self.classify_developer(repositories, language_stats, categories)
            impact = self.calculate_impact_metrics(repositories, profile)

            report("advanced", 95, "Finalizing analysis", 5)
            now = self.clock()
            analysis = DeveloperAnalysis(
                username=username,
                profile=profile,
                language_stats=language_stats,
                repository_categories=categories,
                activity_patterns=activity,
                collaboration_metrics=collaboration,
                project_complexity=complexity,
                developer_classification=classification,
                impact_metrics=impact,
                last_analyzed=_isoformat(now),
                cache_expiry=_isoformat(now + self.cache.default_ttl),
            )
            self.cache.set(ANALYSIS_CACHE_SERVICE, ANALYSIS_CACHE_METHOD, username, analysis.to_dict())

            report("complete", 100, "Analysis complete", 0)
            return analysis
        except Exception as error:
            handled = self.errors.handle_error(
                error,
                {"service": ANALYSIS_CACHE_SERVICE, "username": username, "stage": "analysis"},
            )
            raise AnalysisError(handled["message"]) from error

    # This function does enrich weighted language stats with proficiency.
    # Repository sizes stand in when the language endpoints fail.
    def analyze_languages(
        self,
        username: str,
        repositories: List[Repository],
        force_refresh: bool = False,
    ) -> List[LanguageStat]:
        try:
            stats = self.github.fetch_language_stats(username, force_refresh)
        except Exception as error:
            print(LANGUAGE_FALLBACK_WARNING_TEMPLATE.format(username=username, error=error), file=sys.stderr)
            return self._languages_from_repository_sizes(repositories)

        for stat in stats:
            stat.proficiency = self.language_proficiency(stat.language, stat.size, repositories)
        return stats

    def language_proficiency(self, language: str, size: float, repositories: List[Repository]) -> float:
        repo_count = sum(1 for repo in repositories if repo.language == language and not repo.fork)
        usage = min(repo_count * 10, 50)
        volume = min(size / 10000, 30)
        complexity = self.language_complexity.get(language, DEFAULT_LANGUAGE_COMPLEXITY) * 2
        return round(min(usage + volume + complexity, 100), 1)

    # This function does assign each active repository to categories.
    # Repositories matching nothing are grouped under Other.
    def categorize_repositories(self, repositories: List[Repository]) -> List[RepositoryCategory]:
        active = _active(repositories)
        members: Dict[str, List[str]] = {}
        for repo in active:
            for category in self.repository_categories(repo):
                members.setdefault(category, []).append(repo.name)

        categories = [
            RepositoryCategory(
                category=category,
                count=len(names),
                percentage=round(len(names) / len(active) * 100, 1) if active else 0.0,
                repositories=names,
                color=REPOSITORY_CATEGORIES.get(category, {}).get("color", OTHER_CATEGORY_COLOR),
            )
            for category, names in members.items()
        ]
        return sorted(categories, key=lambda item: item.count, reverse=True)

    def repository_categories(self, repo: Repository) -> List[str]:
        search_text = f"{repo.name} {repo.description} {' '.join(repo.topics)}".lower()
        matched = []
        for category, pattern in REPOSITORY_CATEGORIES.items():
            score = 2 * sum(1 for keyword in pattern["keywords"] if keyword in search_text)
            if repo.language and repo.language in pattern["languages"]:
                score += 3
            score += 3 * sum(1 for topic in pattern["topics"] if topic in repo.topics)
            if score >= 2:
                matched.append(category)
        return matched or [OTHER_CATEGORY]

    def calculate_collaboration_metrics(self, repositories: List[Repository], profile: GitHubProfile) -> CollaborationMetrics:
        active = _active(repositories)
        total_stars = sum(repo.stargazers_count for repo in active)
        total_forks = sum(repo.forks_count for repo in active)

        engagement = min(
            min(total_stars / 10, 30)
            + min(total_forks / 5, 25)
            + min(profile.followers / 10, 25)
            + min(len(active) * 2, 25),
            100,
        )
        return CollaborationMetrics(
            engagement_score=round(engagement, 1),
            average_stars_per_repo=round(total_stars / len(active), 2) if active else 0.0,
            average_forks_per_repo=round(total_forks / len(active), 2) if active else 0.0,
            community_health=round(min(engagement + (10 if profile.public_repos > 5 else 0), 100), 1),
        )

    # This function does score project size, language spread, and topics.
    # Only active repositories contribute to the aggregates.
    def calculate_project_complexity(
        self,
        repositories: List[Repository],
        language_stats: List[LanguageStat],
    ) -> ProjectComplexity:
        active = _active(repositories)
        average_size = sum(repo.size for repo in active) / len(active) if active else 0.0
        prominent = {stat.language for stat in language_stats if stat.percentage > 5}
        multi_language = sum(1 for repo in active if repo.language in prominent)
        average_topics = sum(len(repo.topics) for repo in active) / len(active) if active else 0.0

        score = min(
            min(average_size / 100, 25)
            + min(len(language_stats) * 5, 25)
            + min(multi_language * 3, 25)
            + min(average_topics * 5, 25),
            100,
        )
        return ProjectComplexity(
            complexity_score=round(score, 1),
            average_repo_size=round(average_size, 1),
            multi_language_projects=multi_language,
            documentation_quality=round(self.documentation_quality(active), 1),
            dependency_complexity=ANALYSIS_DEPENDENCY_COMPLEXITY,
        )

    def documentation_quality(self, repositories: List[Repository]) -> float:
        if not repositories:
            return 0.0
        documented = sum(1 for repo in repositories if repo.has_wiki or repo.has_pages)
        described = sum(1 for repo in repositories if len(repo.description) > 10)
        return min(documented / len(repositories) * 50 + described / len(repositories) * 50, 100)

    # This function does build 52 weeks of activity from the first
    # strategy that succeeds, or empty weeks when none do.
    def analyze_activity_patterns(
        self,
        username: str,
        repositories: List[Repository],
        force_refresh: bool = False,
    ) -> List[ActivityWeek]:
        for name, strategy in self.activity_strategies:
            try:
                return strategy(username, repositories, force_refresh)
            except Exception as error:
                print(STRATEGY_FAILED_WARNING_TEMPLATE.format(strategy=name, username=username, error=error), file=sys.stderr)
        print(ALL_STRATEGIES_FAILED_WARNING_TEMPLATE.format(username=username), file=sys.stderr)
        return self.empty_activity()

    def empty_activity(self) -> List[ActivityWeek]:
        return [ActivityWeek(date=start.isoformat()) for start in self._week_starts()]

    def activity_from_calendar(
        self,
        username: str,
        repositories: List[Repository],
        force_refresh: bool = False,
    ) -> List[ActivityWeek]:
        contributions = self.github.fetch_contribution_calendar(username, force_refresh)
        weeks = self.empty_activity()
        featured = [repo.name for repo in repositories[:3] if repo.is_active]
        for day_string, count in contributions.items():
            index = self._week_index(date.fromisoformat(day_string))
            if index is None or count <= 0:
                continue
            week = weeks[index]
            week.commits += count
            week.additions += count * ACTIVITY_CALENDAR_ADDITIONS_PER_CONTRIBUTION
            week.deletions += count * ACTIVITY_CALENDAR_DELETIONS_PER_CONTRIBUTION
            _add_repositories(week, featured)
        return weeks

    # This function does sum weekly commit stats across active repositories.
    # It raises when no repository produced any data.
    def activity_from_commit_stats(
        self,
        username: str,
        repositories: List[Repository],
        force_refresh: bool = False,
    ) -> List[ActivityWeek]:
        weeks = self.empty_activity()
        collected = False
        for index, repo in enumerate(_active(repositories)[:ACTIVITY_COMMIT_REPO_CAP]):
            if index:
                self.sleep(ACTIVITY_COMMIT_REQUEST_DELAY_SECONDS)
            owner = repo.owner or username
            try:
                commit_weeks = self.github.fetch_repo_commit_activity(owner, repo.name, force_refresh)
            except Exception as error:
                print(COMMIT_ACTIVITY_SKIPPED_TEMPLATE.format(full_name=f"{owner}/{repo.name}", error=error), file=sys.stderr)
                continue

            for commit_week in commit_weeks:
                collected = True
                week_index = self._week_index(datetime.fromtimestamp(commit_week.week, tz=timezone.utc).date())
                if week_index is None or commit_week.total <= 0:
                    continue
                week = weeks[week_index]
                week.commits += commit_week.total
                week.additions += commit_week.total * ACTIVITY_COMMIT_ADDITIONS_PER_COMMIT
                week.deletions += commit_week.total * ACTIVITY_COMMIT_DELETIONS_PER_COMMIT
                _add_repositories(week, [repo.name])

        if not collected:
            raise AnalysisError(NO_COMMIT_ACTIVITY_MESSAGE)
        return weeks

    # This function does estimate weekly activity from public events.
    # Line counts use randomized per-commit multipliers.
    def activity_from_events(
        self,
        username: str,
        repositories: List[Repository],
        force_refresh: bool = False,
    ) -> List[ActivityWeek]:
        events = self.github.fetch_recent_activity(username, ACTIVITY_EVENT_LIMIT, force_refresh)
        weeks = self.empty_activity()
        for event in events:
            created = parse_timestamp(event.created_at)
            index = self._week_index(created.date()) if created else None
            if index is None:
                continue
            weeks[index].commits += _event_commits(event)
            if event.repo_name:
                _add_repositories(weeks[index], [event.repo_name])

        for week in weeks:
            week.additions = week.commits * self.rng.randint(*ACTIVITY_EVENT_ADDITIONS_RANGE)
            week.deletions = week.commits * self.rng.randint(*ACTIVITY_EVENT_DELETIONS_RANGE)
        return weeks

    # This function does bucket experience and estimate confidence.
    # Experience thresholds use active repositories and their stars.
    def classify_developer(
        self,
        repositories: List[Repository],
        language_stats: List[LanguageStat],
        categories: List[RepositoryCategory],
    ) -> DeveloperClassification:
        active = _active(repositories)
        repo_count = len(active)
        total_stars = sum(repo.stargazers_count for repo in active)
        average_complexity = (
            sum(self.language_complexity.get(stat.language, DEFAULT_LANGUAGE_COMPLEXITY) for stat in language_stats)
            / len(language_stats)
            if language_stats
            else 0.0
        )

        if repo_count < 5 or total_stars < 10:
            experience = "Junior"
        elif repo_count < 15 or total_stars < 50:
            experience = "Mid"
        elif repo_count < 30 or total_stars < 200:
            experience = "Senior"
        else:
            experience = "Expert"

        confidence = min(repo_count * 2 + total_stars / 10 + average_complexity * 5 + len(categories) * 10, 100)
        return DeveloperClassification(
            primary_role=categories[0].category if categories else GENERAL_ROLE,
            confidence=round(confidence, 1),
            skills=[stat.language for stat in language_stats[:3]],
            experience=experience,
            specializations=[category.category for category in categories[:3]],
        )

    def calculate_impact_metrics(self, repositories: List[Repository], profile: GitHubProfile) -> ImpactMetrics:
        active = _active(repositories)
        total_stars = sum(repo.stargazers_count for repo in active)
        total_forks = sum(repo.forks_count for repo in active)
        starred = sum(1 for repo in active if repo.stargazers_count > 5)
        described = sum(1 for repo in active if len(repo.description) > 20)
        return ImpactMetrics(
            total_stars=total_stars,
            total_forks=total_forks,
            project_reach=total_stars + total_forks + profile.followers,
            community_impact=round(min((total_stars * 2 + total_forks * 3 + profile.followers) / 10, 100), 1),
            code_quality=min(starred * 10 + described * 5, 100),
        )

    def _cached_analysis(self, username: str) -> Optional[DeveloperAnalysis]:
        cached = self.cache.get(ANALYSIS_CACHE_SERVICE, ANALYSIS_CACHE_METHOD, username)
        if cached is None:
            return None
        analysis = DeveloperAnalysis.from_dict(cached)
        expiry = parse_timestamp(analysis.cache_expiry)
        if expiry is None or expiry.timestamp() <= self.clock():
            return None
        return analysis

    def _languages_from_repository_sizes(self, repositories: List[Repository]) -> List[LanguageStat]:
        sizes: Dict[str, float] = {}
        for repo in _active(repositories):
            if repo.language:
                # size is reported in kilobytes
                sizes[repo.language] = sizes.get(repo.language, 0.0) + repo.size * 1024

        top = sorted(sizes.items(), key=lambda item: item[1], reverse=True)[:ANALYSIS_FALLBACK_LANGUAGE_TOP_N]
        total = sum(size for _, size in top)
        return [
            LanguageStat(
                language=language,
                size=size,
                percentage=round(size / total * 100, 1) if total else 0.0,
                color=language_color(language),
                proficiency=self.language_proficiency(language, size, repositories),
            )
            for language, size in top
        ]

    def _today(self) -> date:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc).date()

    # This function does list the first day of each tracked week.
    # The last week ends today; weeks are in chronological order.
    def _week_starts(self) -> List[date]:
        today = self._today()
        return [today - timedelta(days=7 * offset + 6) for offset in reversed(range(ACTIVITY_WEEKS))]

    def _week_index(self, day: date) -> Optional[int]:
        days_ago = (self._today() - day).days
        if days_ago < 0 or days_ago >= ACTIVITY_WEEKS * 7:
            return None
        return ACTIVITY_WEEKS - 1 - days_ago // 7

def _active(repositories: List[Repository]) -> List[Repository]:
    return [repo for repo in repositories if repo.is_active]

def _add_repositories(week: ActivityWeek, names: List[str]) -> None:
    for name in names:
        if name not in week.repositories:
            week.repositories.append(name)

def _event_commits(event: ActivityEvent) -> int:
    if event.type == EVENT_PUSH:
        details = (event.payload or {}).get("details") or ""
        first = details.split(" ")[0] if details else ""
        return int(first) if first.isdigit() and int(first) > 0 else 1
    if event.type in SINGLE_COMMIT_EVENTS:
        return 1
    return 0

def _isoformat(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
