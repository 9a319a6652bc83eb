#------------------------------------------------------------
#                      github_service.py
#               Handles GitHub API requests and
#              normalizes responses into records.

import math
import sys
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple
import requests
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from ..config import (
    GITHUB_API_ACCEPT_HEADER,
    GITHUB_API_BASE_URL,
    GITHUB_DEFAULT_ACTIVITY_LIMIT,
    GITHUB_DEFAULT_REPO_LIMIT,
    GITHUB_GRAPHQL_URL,
    GITHUB_LANGUAGE_REPO_CAP,
    GITHUB_LANGUAGE_REQUEST_DELAY_SECONDS,
    GITHUB_LANGUAGE_TOP_N,
    GITHUB_RECENT_UPDATE_BONUS,
    GITHUB_REQUEST_TIMEOUT_SECONDS,
    GITHUB_SIGNIFICANCE_SCALE,
    GITHUB_USER_AGENT,
    language_color,
)
from ..errors import (
    ApiError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
)
from ..models import ActivityEvent, CommitWeek, GitHubProfile, LanguageStat, Repository, ScorerConfig
from .cache_service import CacheStore
from .error_service import NETWORK_MESSAGE, ErrorService

USER_ENDPOINT_TEMPLATE = "/users/{username}"
USER_REPOS_ENDPOINT_TEMPLATE = "/users/{username}/repos"
REPO_LANGUAGES_ENDPOINT_TEMPLATE = "/repos/{owner}/{repo}/languages"
REPO_COMMIT_ACTIVITY_ENDPOINT_TEMPLATE = "/repos/{owner}/{repo}/stats/commit_activity"
USER_EVENTS_ENDPOINT_TEMPLATE = "/users/{username}/events/public"

USER_NOT_FOUND_MESSAGE = "User not found. Please check the username and try again."
REPO_NOT_FOUND_MESSAGE_TEMPLATE = "Repository {owner}/{repo} not found."
RATE_LIMIT_MESSAGE_TEMPLATE = "GitHub API rate limit exceeded. Try again in {minutes} minute(s)."
AUTH_FAILED_MESSAGE = "GitHub API authentication failed. Please check your credentials."
UNAVAILABLE_MESSAGE = "GitHub service is temporarily unavailable. Please try again later."
GENERIC_ERROR_TEMPLATE = "GitHub API error: {status} - {reason}"
GRAPHQL_TOKEN_REQUIRED_MESSAGE = "GitHub GraphQL API requires a GITHUB_TOKEN for contribution data."
GRAPHQL_ERROR_TEMPLATE = "GitHub GraphQL error: {message}"
USERNAME_REQUIRED_TEMPLATE = "Username is required to fetch {resource}."
OWNER_REPO_REQUIRED_MESSAGE = "Owner and repository name are required."
LANGUAGE_FETCH_SKIPPED_TEMPLATE = "WARNING: skipping languages for {full_name}: {error}"

EVENT_PUSH = "PushEvent"
EVENT_CREATE = "CreateEvent"
EVENT_FORK = "ForkEvent"
EVENT_WATCH = "WatchEvent"
EVENT_ISSUES = "IssuesEvent"
EVENT_PULL_REQUEST = "PullRequestEvent"

CONTRIBUTION_CALENDAR_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""

# This function does turn one raw event payload into a display shape.
# It returns None for event types the pipeline does not track.
def format_event_payload(event: dict) -> Optional[Dict[str, str]]:
    event_type = event.get("type")
    payload = event.get("payload") or {}

    if event_type == EVENT_PUSH:
        commits = payload.get("commits") or []
        first_message = (commits[0] or {}).get("message") if commits else None
        return {
            "action": "pushed",
            "details": f"{len(commits)} commit{'' if len(commits) == 1 else 's'}",
            "message": first_message or "No commit message",
            "branch": (payload.get("ref") or "").replace("refs/heads/", "") or "main",
        }
    if event_type == EVENT_CREATE:
        ref_type = payload.get("ref_type") or ""
        return {
            "action": "created",
            "details": f"{ref_type} {payload.get('ref') or ''}".strip(),
            "message": payload.get("description") or f"Created {ref_type}",
        }
    if event_type == EVENT_FORK:
        forkee = payload.get("forkee") or {}
        return {
            "action": "forked",
            "details": "repository",
            "message": f"Forked to {forkee.get('full_name') or 'unknown'}",
        }
    if event_type == EVENT_WATCH:
        return {
            "action": "starred",
            "details": "repository",
            "message": "Starred this repository",
        }
    if event_type == EVENT_ISSUES:
        issue = payload.get("issue") or {}
        return {
            "action": f"{payload.get('action') or ''} issue".strip(),
            "details": f"#{issue.get('number') or ''}",
            "message": issue.get("title") or "No title",
        }
    if event_type == EVENT_PULL_REQUEST:
        pull_request = payload.get("pull_request") or {}
        return {
            "action": f"{payload.get('action') or ''} pull request".strip(),
            "details": f"#{pull_request.get('number') or ''}",
            "message": pull_request.get("title") or "No title",
        }
    return None

def parse_timestamp(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

def _require_username(username: Any, resource: str) -> None:
    if not username or not isinstance(username, str):
        raise ValidationError(USERNAME_REQUIRED_TEMPLATE.format(resource=resource))

class GitHubService:

    # This function does initialize the client with its collaborators.
    # The HTTP session, sleep, and clock are injectable for tests.
    def __init__(
        self,
        config: ScorerConfig,
        cache: CacheStore,
        errors: ErrorService,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.cache = cache
        self.errors = errors
        self.session = session or requests.Session()
        self.sleep = sleep
        self.clock = clock

    # This function does build request headers for GitHub API calls.
    # It adds auth headers when a token is configured.
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": GITHUB_API_ACCEPT_HEADER, "User-Agent": GITHUB_USER_AGENT}
        if self.config.github_token:
            headers["Authorization"] = f"token {self.config.github_token}"
        return headers

    # This function does fetch and normalize a user profile.
    def fetch_user_profile(self, username: str, force_refresh: bool = False) -> GitHubProfile:
        _require_username(username, "the profile")
        cached = self._cached("profile", username, force_refresh)
        if cached is not None:
            return GitHubProfile.from_dict(cached)

        data = self._request(USER_ENDPOINT_TEMPLATE.format(username=username))
        profile = GitHubProfile.from_api(data)
        self.cache.set("github", "profile", username, profile.to_dict())
        return profile

    def fetch_user_repositories(
        self,
        username: str,
        limit: int = GITHUB_DEFAULT_REPO_LIMIT,
        force_refresh: bool = False,
    ) -> List[Repository]:
        _require_username(username, "repositories")
        params = f"{username}_{limit}"
        cached = self._cached("repositories", params, force_refresh)
        if cached is not None:
            return [Repository.from_dict(item) for item in cached]

        data = self._request(
            USER_REPOS_ENDPOINT_TEMPLATE.format(username=username),
            params={"sort": "updated", "per_page": limit},
        )
        repositories = [Repository.from_api(item) for item in data or [] if isinstance(item, dict)]
        self.cache.set("github", "repositories", params, [repo.to_dict() for repo in repositories])
        return repositories

    # This function does fetch per-language byte counts for a repository.
    def fetch_repository_languages(self, owner: str, repo: str, force_refresh: bool = False) -> Dict[str, int]:
        if not owner or not repo:
            raise ValidationError(OWNER_REPO_REQUIRED_MESSAGE)
        params = f"{owner}/{repo}"
        cached = self._cached("repo-languages", params, force_refresh)
        if cached is not None:
            return cached

        data = self._request(
            REPO_LANGUAGES_ENDPOINT_TEMPLATE.format(owner=owner, repo=repo),
            not_found_message=REPO_NOT_FOUND_MESSAGE_TEMPLATE.format(owner=owner, repo=repo),
        )
        languages = {
            str(language): int(byte_count)
            for language, byte_count in (data or {}).items()
            if isinstance(byte_count, (int, float)) and not isinstance(byte_count, bool)
        }
        self.cache.set("github", "repo-languages", params, languages)
        return languages

    # This function does fetch the last year of weekly commit counts.
    # GitHub answers 202 while it computes stats; that yields [] uncached.
    def fetch_repo_commit_activity(self, owner: str, repo: str, force_refresh: bool = False) -> List[CommitWeek]:
        if not owner or not repo:
            raise ValidationError(OWNER_REPO_REQUIRED_MESSAGE)
        params = f"{owner}/{repo}"
        cached = self._cached("commit-activity", params, force_refresh)
        if cached is not None:
            return [CommitWeek.from_dict(item) for item in cached]

        data = self._request(
            REPO_COMMIT_ACTIVITY_ENDPOINT_TEMPLATE.format(owner=owner, repo=repo),
            not_found_message=REPO_NOT_FOUND_MESSAGE_TEMPLATE.format(owner=owner, repo=repo),
        )
        if not isinstance(data, list):
            return []
        weeks = [CommitWeek.from_api(item) for item in data if isinstance(item, dict)]
        if weeks:
            self.cache.set("github", "commit-activity", params, [week.to_dict() for week in weeks])
        return weeks

    # This function does fetch recent public events for a user.
    # Unsupported event types are dropped rather than passed through.
    def fetch_recent_activity(
        self,
        username: str,
        limit: int = GITHUB_DEFAULT_ACTIVITY_LIMIT,
        force_refresh: bool = False,
    ) -> List[ActivityEvent]:
        _require_username(username, "recent activity")
        params = f"{username}_{limit}"
        cached = self._cached("activity", params, force_refresh)
        if cached is not None:
            return [ActivityEvent.from_dict(item) for item in cached]

        data = self._request(
            USER_EVENTS_ENDPOINT_TEMPLATE.format(username=username),
            params={"per_page": limit},
        )
        activities = []
        for event in data or []:
            if not isinstance(event, dict):
                continue
            payload = format_event_payload(event)
            if payload is None:
                continue
            repo_name = (event.get("repo") or {}).get("name") or ""
            activities.append(
                ActivityEvent(
                    id=str(event.get("id") or ""),
                    type=event.get("type") or "",
                    created_at=event.get("created_at") or "",
                    payload=payload,
                    repo_name=repo_name,
                    repo_url=f"https://github.com/{repo_name}" if repo_name else "",
                )
            )
        self.cache.set("github", "activity", params, [activity.to_dict() for activity in activities])
        return activities

    # This function does compute a weighted language distribution.
    # Each significant repository contributes its bytes scaled by reach.
    def fetch_language_stats(self, username: str, force_refresh: bool = False) -> List[LanguageStat]:
        _require_username(username, "language statistics")
        cached = self._cached("languages", username, force_refresh)
        if cached is not None:
            return [LanguageStat.from_dict(item) for item in cached]

        repositories = self.fetch_user_repositories(username, GITHUB_DEFAULT_REPO_LIMIT, force_refresh)
        ranked = sorted(
            ((self.repository_significance(repo), repo) for repo in repositories if repo.is_active),
            key=lambda item: item[0],
            reverse=True,
        )[:GITHUB_LANGUAGE_REPO_CAP]

        weighted: Dict[str, float] = {}
        for index, (significance, repo) in enumerate(ranked):
            if index:
                self.sleep(GITHUB_LANGUAGE_REQUEST_DELAY_SECONDS)
            owner = repo.owner or username
            try:
                languages = self.fetch_repository_languages(owner, repo.name, force_refresh)
            except Exception as error:
                print(LANGUAGE_FETCH_SKIPPED_TEMPLATE.format(full_name=f"{owner}/{repo.name}", error=error), file=sys.stderr)
                continue
            weight = 1 + significance / GITHUB_SIGNIFICANCE_SCALE
            for language, byte_count in languages.items():
                weighted[language] = weighted.get(language, 0.0) + byte_count * weight

        top = sorted(weighted.items(), key=lambda item: item[1], reverse=True)[:GITHUB_LANGUAGE_TOP_N]
        total = sum(size for _, size in top)
        stats = [
            LanguageStat(
                language=language,
                size=round(size, 1),
                percentage=round(size / total * 100, 1) if total else 0.0,
                color=language_color(language),
            )
            for language, size in top
        ]
        self.cache.set("github", "languages", username, [stat.to_dict() for stat in stats])
        return stats

    # This function does fetch a day-by-day contribution count map.
    # It needs a token because GitHub only serves it over GraphQL.
    def fetch_contribution_calendar(self, username: str, force_refresh: bool = False) -> Dict[str, int]:
        _require_username(username, "contributions")
        cached = self._cached("contributions", username, force_refresh)
        if cached is not None:
            return cached
        if not self.config.github_token:
            raise ApiError(GRAPHQL_TOKEN_REQUIRED_MESSAGE)

        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        variables = {
            "login": username,
            "from": (now - relativedelta(years=1)).isoformat(),
            "to": now.isoformat(),
        }
        data = self.errors.with_retry(
            lambda: self._graphql_once(CONTRIBUTION_CALENDAR_QUERY, variables),
            {"service": "github", "method": "contributions", "username": username},
        )
        user = (data or {}).get("user")
        if not user:
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)

        calendar = ((user.get("contributionsCollection") or {}).get("contributionCalendar")) or {}
        contributions: Dict[str, int] = {}
        for week in calendar.get("weeks") or []:
            for day in week.get("contributionDays") or []:
                day_string = day.get("date")
                if not day_string:
                    continue
                try:
                    date.fromisoformat(day_string)
                except ValueError:
                    continue
                contributions[day_string] = int(day.get("contributionCount") or 0)

        self.cache.set("github", "contributions", username, contributions)
        return contributions

    # This function does score how much a repository should count.
    # Stars weigh double, forks once, recent updates earn a bonus.
    def repository_significance(self, repo: Repository) -> float:
        significance = repo.stargazers_count * 2 + repo.forks_count
        updated = parse_timestamp(repo.updated_at)
        now = datetime.fromtimestamp(self.clock(), tz=timezone.utc)
        if updated and updated > now - relativedelta(years=1):
            significance += GITHUB_RECENT_UPDATE_BONUS
        return significance

    def _cached(self, method: str, params: str, force_refresh: bool) -> Any:
        if force_refresh:
            self.cache.invalidate("github", method, params)
            return None
        return self.cache.get("github", method, params)

    def _request(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        not_found_message: str = USER_NOT_FOUND_MESSAGE,
    ) -> Any:
        return self.errors.with_retry(
            lambda: self._request_once(endpoint, params, not_found_message),
            {"service": "github", "method": endpoint},
        )

    # This function does perform one REST call and map failures.
    # Non-2xx statuses become specific exceptions with safe messages.
    def _request_once(self, endpoint: str, params: Optional[dict], not_found_message: str) -> Any:
        url = f"{GITHUB_API_BASE_URL}{endpoint}"
        try:
            response = self.session.get(
                url,
                headers=self.headers(),
                params=params,
                timeout=GITHUB_REQUEST_TIMEOUT_SECONDS,
            )
        except requests.Timeout:
            raise
        except requests.ConnectionError as error:
            raise NetworkError(NETWORK_MESSAGE) from error

        if response.status_code == 202:
            return None
        if response.ok:
            return response.json()
        raise self._status_error(response, not_found_message)

    def _status_error(self, response: requests.Response, not_found_message: str) -> Exception:
        status = response.status_code
        if status == 404:
            return NotFoundError(not_found_message)
        if status == 403 or status == 429:
            wait_seconds = self._rate_limit_wait_seconds(response.headers)
            if wait_seconds is not None:
                minutes = max(1, math.ceil(wait_seconds / 60))
                return RateLimitError(RATE_LIMIT_MESSAGE_TEMPLATE.format(minutes=minutes))
        if status == 401:
            return AuthenticationError(AUTH_FAILED_MESSAGE)
        if status >= 500:
            return ServiceUnavailableError(UNAVAILABLE_MESSAGE)
        return ApiError(GENERIC_ERROR_TEMPLATE.format(status=status, reason=response.reason or "Unknown"))

    # This function does compute how long a rate limit lasts.
    # It returns None when the response is not a rate-limit rejection.
    def _rate_limit_wait_seconds(self, headers) -> Optional[float]:
        retry_after = headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(0.0, float(retry_after))
            except ValueError:
                retry_at = parse_timestamp(retry_after)
                if retry_at is None:
                    return 0.0
                return max(0.0, retry_at.timestamp() - self.clock())

        if headers.get("X-RateLimit-Remaining") == "0":
            reset = headers.get("X-RateLimit-Reset")
            try:
                return max(0.0, float(reset) - self.clock())
            except (TypeError, ValueError):
                return 0.0
        return None

    def _graphql_once(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                GITHUB_GRAPHQL_URL,
                headers={**self.headers(), "Authorization": f"bearer {self.config.github_token}"},
                json={"query": query, "variables": variables},
                timeout=GITHUB_REQUEST_TIMEOUT_SECONDS,
            )
        except requests.Timeout:
            raise
        except requests.ConnectionError as error:
            raise NetworkError(NETWORK_MESSAGE) from error

        if not response.ok:
            raise self._status_error(response, USER_NOT_FOUND_MESSAGE)
        body = response.json() or {}
        errors = body.get("errors") or []
        if errors:
            raise ApiError(GRAPHQL_ERROR_TEMPLATE.format(message=(errors[0] or {}).get("message") or "query failed"))
        return body.get("data") or {}
