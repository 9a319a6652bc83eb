"""
Shared fixtures for the profile scorer tests.

HTTP traffic goes through FakeSession, time through FakeClock, and every
backoff or throttling pause is recorded instead of slept.
"""

import re
from datetime import datetime, timezone

import pytest
from requests.structures import CaseInsensitiveDict

from profile_scorer.models import ScorerConfig
from profile_scorer.services.cache_service import CacheStore, SqliteCacheBackend
from profile_scorer.services.error_service import ErrorService
from profile_scorer.services.github_service import GitHubService
from profile_scorer.services.leetcode_service import LeetCodeService

GITHUB = "https://api.github.com"
LEETCODE_URL = "https://leetcode.test/graphql"
NOW = 1_700_000_000.0
DAY = 24 * 60 * 60


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None, reason="OK"):
        self.status_code = status_code
        self.payload = payload
        self.headers = CaseInsensitiveDict(headers or {})
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        return self.payload


class FakeSession:
    """Routes requests to queued responses; the last queued one repeats."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, url, *responses, operation=None):
        self.routes.setdefault((method, url, operation), []).extend(responses)

    def calls_to(self, url):
        return [call for call in self.calls if call[1] == url]

    def _respond(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        operation = None
        body = kwargs.get("json") or {}
        match = re.search(r"query\s+(\w+)", body.get("query", ""))
        if match:
            operation = match.group(1)

        queue = self.routes.get((method, url, operation)) or self.routes.get((method, url, None))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {url} {operation or ''}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("POST", url, **kwargs)


class FakeClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def iso(timestamp):
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def profile_payload(login="octocat", **overrides):
    payload = {
        "id": 583231,
        "login": login,
        "name": "The Octocat",
        "bio": None,
        "followers": 120,
        "following": 9,
        "public_repos": 8,
        "public_gists": 2,
        "avatar_url": f"https://avatars.example/{login}",
        "html_url": f"https://github.com/{login}",
        "created_at": "2011-01-25T18:44:36Z",
        "updated_at": iso(NOW - 10 * DAY),
        "plan": {"name": "pro"},
    }
    payload.update(overrides)
    return payload


def repo_payload(name, owner="octocat", **overrides):
    payload = {
        "id": abs(hash(name)) % 100000,
        "name": name,
        "full_name": f"{owner}/{name}",
        "description": None,
        "html_url": f"https://github.com/{owner}/{name}",
        "language": "Python",
        "stargazers_count": 0,
        "forks_count": 0,
        "watchers_count": 0,
        "size": 100,
        "default_branch": "main",
        "topics": [],
        "created_at": iso(NOW - 400 * DAY),
        "updated_at": iso(NOW - 5 * DAY),
        "pushed_at": iso(NOW - 5 * DAY),
        "private": False,
        "fork": False,
        "archived": False,
        "has_wiki": False,
        "has_pages": False,
        "license": None,
        "owner": {"login": owner},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def errors(sleeps):
    return ErrorService(sleep=sleeps.append, jitter=lambda: 0.0)


@pytest.fixture
def cache(clock):
    store = CacheStore(SqliteCacheBackend(), clock=clock)
    yield store
    store.backend.close()


@pytest.fixture
def config():
    return ScorerConfig(
        github_username="octocat",
        leetcode_username="leeter",
        github_token="",
        leetcode_graphql_url=LEETCODE_URL,
        cache_db_path=":memory:",
    )


@pytest.fixture
def github(config, cache, errors, session, sleeps, clock):
    return GitHubService(config, cache, errors, session=session, sleep=sleeps.append, clock=clock)


@pytest.fixture
def leetcode(config, cache, errors, session, clock):
    return LeetCodeService(config, cache, errors, session=session, clock=clock)
