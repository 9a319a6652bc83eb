#------------------------------------------------------------
#                     leetcode_service.py
#          Handles LeetCode GraphQL requests and
#              normalizes responses into records.

import time
from typing import Any, Callable, Dict, List, Optional
import requests
from ..config import (
    DEFAULT_CACHE_TTL_SECONDS,
    GITHUB_REQUEST_TIMEOUT_SECONDS,
    GITHUB_USER_AGENT,
    LEETCODE_ACCEPTED_STATUS,
    LEETCODE_DEFAULT_SUBMISSION_LIMIT,
    LEETCODE_LANGUAGE_SUBMISSION_LIMIT,
    LEETCODE_LANGUAGE_TOP_N,
    LEETCODE_REFERER,
    language_color,
)
from ..errors import ApiError, NetworkError, NotFoundError, RateLimitError, ServiceUnavailableError, ValidationError
from ..models import ContestData, LanguageStat, LeetCodeProfile, ProblemStats, ScorerConfig, Submission
from .cache_service import CacheStore, MemoryTier, generate_key
from .error_service import NETWORK_MESSAGE, ErrorService

USER_NOT_FOUND_MESSAGE = "User not found. Please check the username and try again."
INVALID_USERNAME_MESSAGE = "Please enter a valid LeetCode username."
USERNAME_REQUIRED_TEMPLATE = "Username is required to fetch {resource}."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
UNAVAILABLE_MESSAGE = "LeetCode service is temporarily unavailable. Please try again later."
GENERIC_ERROR_TEMPLATE = "LeetCode API error: {status}"
GRAPHQL_FAILED_MESSAGE = "GraphQL query failed"

PROFILE_QUERY = """
query getUserProfile($username: String!) {
  matchedUser(username: $username) {
    username
    profile {
      realName
      aboutMe
      userAvatar
      location
      websites
      skillTags
      company
      school
      ranking
    }
    submitStats {
      acSubmissionNum { difficulty count submissions }
      totalSubmissionNum { difficulty count submissions }
    }
    badges { id displayName icon creationDate }
  }
}
"""

CONTEST_QUERY = """
query getUserContestRanking($username: String!) {
  userContestRanking(username: $username) {
    attendedContestsCount
    rating
    globalRanking
    totalParticipants
    topPercentage
    badge { name }
  }
  userContestRankingHistory(username: $username) {
    attended
    trendDirection
    problemsSolved
    totalProblems
    finishTimeInSeconds
    rating
    ranking
    contest { title startTime }
  }
}
"""

SUBMISSIONS_QUERY = """
query getRecentSubmissions($username: String!, $limit: Int) {
  recentSubmissionList(username: $username, limit: $limit) {
    title
    titleSlug
    timestamp
    statusDisplay
    lang
    runtime
    url
    isPending
    memory
    hasNotes
    notes
  }
}
"""

PROBLEM_STATS_QUERY = """
query getUserProblemsSolved($username: String!) {
  allQuestionsCount { difficulty count }
  matchedUser(username: $username) {
    problemsSolvedBeatsStats { difficulty percentage }
    submitStatsGlobal {
      acSubmissionNum { difficulty count submissions }
    }
    tagProblemCounts {
      advanced { tagName tagSlug problemsSolved }
      intermediate { tagName tagSlug problemsSolved }
      fundamental { tagName tagSlug problemsSolved }
    }
  }
}
"""

def _require_username(username: Any, resource: str) -> None:
    if not username or not isinstance(username, str):
        raise ValidationError(USERNAME_REQUIRED_TEMPLATE.format(resource=resource))

class LeetCodeService:

    # This function does initialize the client with its collaborators.
    # Responses are kept in the shared cache and an instance memory tier.
    def __init__(
        self,
        config: ScorerConfig,
        cache: CacheStore,
        errors: ErrorService,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.cache = cache
        self.errors = errors
        self.session = session or requests.Session()
        self.local_cache = MemoryTier(None, clock)

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": GITHUB_USER_AGENT,
            "Referer": LEETCODE_REFERER,
        }

    # This function does fetch and normalize a user profile.
    # A response without a matched user means the account does not exist.
    def fetch_user_profile(self, username: str, force_refresh: bool = False) -> LeetCodeProfile:
        if not username or not isinstance(username, str):
            raise ValidationError(INVALID_USERNAME_MESSAGE)
        cached = self._cached("profile", username, force_refresh)
        if cached is not None:
            return LeetCodeProfile.from_dict(cached)

        data = self._query(PROFILE_QUERY, {"username": username}, "profile")
        if not data.get("matchedUser"):
            raise NotFoundError(USER_NOT_FOUND_MESSAGE)
        profile = LeetCodeProfile.from_api(data["matchedUser"])
        self._store("profile", username, profile.to_dict())
        return profile

    def fetch_contest_data(self, username: str, force_refresh: bool = False) -> ContestData:
        _require_username(username, "contest data")
        cached = self._cached("contest", username, force_refresh)
        if cached is not None:
            return ContestData.from_dict(cached)

        data = self._query(CONTEST_QUERY, {"username": username}, "contest")
        contest = ContestData.from_api(data)
        self._store("contest", username, contest.to_dict())
        return contest

    def fetch_recent_submissions(
        self,
        username: str,
        limit: int = LEETCODE_DEFAULT_SUBMISSION_LIMIT,
        force_refresh: bool = False,
    ) -> List[Submission]:
        _require_username(username, "submissions")
        params = f"{username}_{limit}"
        cached = self._cached("submissions", params, force_refresh)
        if cached is not None:
            return [Submission.from_dict(item) for item in cached]

        data = self._query(SUBMISSIONS_QUERY, {"username": username, "limit": limit}, "submissions")
        submissions = [
            Submission.from_api(item)
            for item in data.get("recentSubmissionList") or []
            if isinstance(item, dict)
        ]
        self._store("submissions", params, [submission.to_dict() for submission in submissions])
        return submissions

    def fetch_problem_stats(self, username: str, force_refresh: bool = False) -> ProblemStats:
        _require_username(username, "problem statistics")
        cached = self._cached("problemstats", username, force_refresh)
        if cached is not None:
            return ProblemStats.from_dict(cached)

        data = self._query(PROBLEM_STATS_QUERY, {"username": username}, "problemstats")
        stats = ProblemStats.from_api(data)
        self._store("problemstats", username, stats.to_dict())
        return stats

    # This function does derive a language mix from recent submissions.
    # Only accepted submissions count toward the percentages.
    def fetch_language_stats(self, username: str, force_refresh: bool = False) -> List[LanguageStat]:
        _require_username(username, "language statistics")
        cached = self._cached("languages", username, force_refresh)
        if cached is not None:
            return [LanguageStat.from_dict(item) for item in cached]

        submissions = self.fetch_recent_submissions(username, LEETCODE_LANGUAGE_SUBMISSION_LIMIT, force_refresh)
        counts: Dict[str, int] = {}
        for submission in submissions:
            if submission.language and submission.status == LEETCODE_ACCEPTED_STATUS:
                counts[submission.language] = counts.get(submission.language, 0) + 1

        accepted = sum(counts.values())
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:LEETCODE_LANGUAGE_TOP_N]
        stats = [
            LanguageStat(
                language=language,
                size=count,
                percentage=round(count / accepted * 100, 1) if accepted else 0.0,
                color=language_color(language),
            )
            for language, count in ranked
        ]
        self._store("languages", username, [stat.to_dict() for stat in stats])
        return stats

    def _cached(self, method: str, params: str, force_refresh: bool) -> Any:
        key = generate_key("leetcode", method, params)
        if force_refresh:
            self.cache.invalidate("leetcode", method, params)
            self.local_cache.delete(key)
            return None
        cached = self.cache.get("leetcode", method, params)
        if cached is not None:
            return cached
        return self.local_cache.get(key)

    def _store(self, method: str, params: str, data: Any) -> None:
        self.local_cache.set(generate_key("leetcode", method, params), data, DEFAULT_CACHE_TTL_SECONDS)
        self.cache.set("leetcode", method, params, data)

    def _query(self, query: str, variables: Dict[str, Any], method: str) -> Dict[str, Any]:
        return self.errors.with_retry(
            lambda: self._request_once(query, variables),
            {"service": "leetcode", "method": method},
        )

    # This function does POST one GraphQL document and map failures.
    # Error arrays inside a 200 response are raised as failures too.
    def _request_once(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.post(
                self.config.leetcode_graphql_url,
                headers=self.headers(),
                json={"query": query, "variables": variables},
                timeout=GITHUB_REQUEST_TIMEOUT_SECONDS,
            )
        except requests.Timeout:
            raise
        except requests.ConnectionError as error:
            raise NetworkError(NETWORK_MESSAGE) from error

        if not response.ok:
            status = response.status_code
            if status == 404:
                raise NotFoundError(USER_NOT_FOUND_MESSAGE)
            if status == 429:
                raise RateLimitError(RATE_LIMIT_MESSAGE)
            if status >= 500:
                raise ServiceUnavailableError(UNAVAILABLE_MESSAGE)
            raise ApiError(GENERIC_ERROR_TEMPLATE.format(status=status))

        body = response.json() or {}
        errors = body.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else {}
            raise ApiError((first or {}).get("message") or GRAPHQL_FAILED_MESSAGE)
        return body.get("data") or {}
