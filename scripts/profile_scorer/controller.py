#------------------------------------------------------------
#                        controller.py
#          Wires the scoring services together and
#              writes the generated report.

import os
from typing import NamedTuple, Optional
import requests
from .config import (
    ENV_FORCE_REFRESH,
    ENV_GITHUB_TOKEN,
    ENV_GITHUB_USERNAME,
    ENV_LEETCODE_GRAPHQL_URL,
    ENV_LEETCODE_USERNAME,
    DEFAULT_LEETCODE_GRAPHQL_URL,
    GITHUB_ANALYSIS_END_MARKER,
    GITHUB_ANALYSIS_START_MARKER,
    NO_GITHUB_TOKEN_MESSAGE,
    SCORE_SUMMARY_END_MARKER,
    SCORE_SUMMARY_START_MARKER,
    env_flag,
    load_language_complexity,
    resolve_cache_db_path,
    resolve_cache_ttl_seconds,
    resolve_report_path,
)
from .errors import ValidationError
from .models import AnalysisProgress, ScorerConfig, UnifiedScore
from .services.analyzer_service import ProfileAnalyzer
from .services.cache_service import CacheStore, SqliteCacheBackend
from .services.error_service import ErrorService
from .services.github_service import GitHubService
from .services.leetcode_service import LeetCodeService
from .services.report_service import load_report, replace_section, save_report
from .services.scoring_service import ScoringService
from .views.markdown_view import render_analysis, render_score_summary

MISSING_USERNAMES_MESSAGE = f"Set {ENV_GITHUB_USERNAME} and {ENV_LEETCODE_USERNAME} to score a profile."
PROGRESS_TEMPLATE = "  [{progress:>3}%] {stage}: {task}"
CACHE_STATUS_TEMPLATE = "Persistent cache: {valid} valid, {expired} expired entries ({path})"
CLEANUP_TEMPLATE = "Removed {count} expired cache entries"
PENDING_FETCHES_TEMPLATE = "Uncached lookups to fetch: {count}"
FORCE_REFRESH_MESSAGE = "Forcing refresh: cached data for both accounts will be discarded"
ERROR_SUMMARY_TEMPLATE = "Handled {total} error(s) during this run: {by_type}"

class Services(NamedTuple):
    cache: CacheStore
    errors: ErrorService
    github: GitHubService
    leetcode: LeetCodeService
    analyzer: ProfileAnalyzer
    scoring: ScoringService

# This function does build run settings from environment variables.
def load_config() -> ScorerConfig:
    return ScorerConfig(
        github_username=os.environ.get(ENV_GITHUB_USERNAME, "").strip(),
        leetcode_username=os.environ.get(ENV_LEETCODE_USERNAME, "").strip(),
        github_token=os.environ.get(ENV_GITHUB_TOKEN, "").strip(),
        leetcode_graphql_url=os.environ.get(ENV_LEETCODE_GRAPHQL_URL, "").strip() or DEFAULT_LEETCODE_GRAPHQL_URL,
        cache_db_path=resolve_cache_db_path(),
        cache_ttl_seconds=resolve_cache_ttl_seconds(),
        force_refresh=env_flag(ENV_FORCE_REFRESH),
    )

# This function does construct every service around one shared cache.
# Passing a session lets callers reuse or fake the HTTP transport.
def build_services(config: ScorerConfig, session: Optional[requests.Session] = None) -> Services:
    session = session or requests.Session()
    cache = CacheStore(SqliteCacheBackend(config.cache_db_path), default_ttl=config.cache_ttl_seconds)
    errors = ErrorService()
    github = GitHubService(config, cache, errors, session=session)
    leetcode = LeetCodeService(config, cache, errors, session=session)
    language_complexity = load_language_complexity()
    analyzer = ProfileAnalyzer(github, cache, errors, language_complexity=language_complexity)
    scoring = ScoringService(github, leetcode, language_complexity=language_complexity)
    return Services(cache, errors, github, leetcode, analyzer, scoring)

def _print_progress(progress: AnalysisProgress) -> None:
    print(PROGRESS_TEMPLATE.format(progress=progress.progress, stage=progress.stage, task=progress.current_task))

# This function does execute one scoring pass end-to-end.
# It analyzes GitHub, scores both accounts, and updates the report.
def run_scoring(
    config: Optional[ScorerConfig] = None,
    services: Optional[Services] = None,
    report_path: Optional[str] = None,
) -> UnifiedScore:
    config = config or load_config()
    if not config.github_username or not config.leetcode_username:
        raise ValidationError(MISSING_USERNAMES_MESSAGE)

    services = services or build_services(config)
    report_path = report_path or resolve_report_path()

    print(f"Scoring GitHub user {config.github_username} and LeetCode user {config.leetcode_username}...")
    if not config.github_token:
        print(NO_GITHUB_TOKEN_MESSAGE)

    cache = services.cache
    removed = cache.cleanup_persistent()
    if removed:
        print(CLEANUP_TEMPLATE.format(count=removed))
    stats = cache.persistent_stats()
    print(CACHE_STATUS_TEMPLATE.format(valid=stats["valid"], expired=stats["expired"], path=config.cache_db_path))

    if config.force_refresh:
        print(FORCE_REFRESH_MESSAGE)
        cache.invalidate_pattern(config.github_username)
        cache.invalidate_pattern(config.leetcode_username)
    pending = cache.preload_user_data(config.github_username, config.leetcode_username)
    print(PENDING_FETCHES_TEMPLATE.format(count=len(pending)))

    print("\nAnalyzing GitHub profile")
    analysis = services.analyzer.analyze_user(config.github_username, on_progress=_print_progress)

    print("\nCalculating unified score")
    score = services.scoring.calculate_unified_score(config.github_username, config.leetcode_username)
    print(f"  Overall: {score.overall}/100 (GitHub {score.github.overall}, LeetCode {score.leetcode.overall})")
    print(f"  Interview readiness: {score.interview_readiness.readiness_level}")

    report = load_report(report_path)
    report = replace_section(report, SCORE_SUMMARY_START_MARKER, SCORE_SUMMARY_END_MARKER, render_score_summary(score))
    report = replace_section(report, GITHUB_ANALYSIS_START_MARKER, GITHUB_ANALYSIS_END_MARKER, render_analysis(analysis))
    save_report(report_path, report)
    print(f"{os.path.basename(report_path)} updated successfully.")

    error_stats = services.errors.get_error_stats()
    if error_stats["total"]:
        print(ERROR_SUMMARY_TEMPLATE.format(total=error_stats["total"], by_type=error_stats["by_type"]))
    return score
