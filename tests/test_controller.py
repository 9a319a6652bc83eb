import random

import pytest

from profile_scorer.config import GITHUB_ANALYSIS_START_MARKER, SCORE_SUMMARY_END_MARKER, SCORE_SUMMARY_START_MARKER
from profile_scorer.controller import Services, build_services, load_config, run_scoring
from profile_scorer.errors import AnalysisError, ValidationError
from profile_scorer.services.analyzer_service import ProfileAnalyzer
from profile_scorer.services.scoring_service import ScoringService

from conftest import GITHUB, LEETCODE_URL, NOW, FakeResponse, iso, profile_payload, repo_payload


@pytest.fixture
def services(cache, errors, github, leetcode, sleeps, clock):
    analyzer = ProfileAnalyzer(github, cache, errors, sleep=sleeps.append, rng=random.Random(1), clock=clock)
    scoring = ScoringService(github, leetcode, clock=clock)
    return Services(cache, errors, github, leetcode, analyzer, scoring)


def graphql(data):
    return FakeResponse(200, {"data": data})


def route_accounts(session):
    repo = repo_payload("toolkit", stargazers_count=8, description="Command line toolkit for developers")
    session.add("GET", f"{GITHUB}/users/octocat", FakeResponse(200, profile_payload()))
    session.add("GET", f"{GITHUB}/users/octocat/repos", FakeResponse(200, [repo]))
    session.add("GET", f"{GITHUB}/repos/octocat/toolkit/languages", FakeResponse(200, {"Python": 9000}))
    session.add("GET", f"{GITHUB}/repos/octocat/toolkit/stats/commit_activity", FakeResponse(202, {}))
    session.add(
        "GET",
        f"{GITHUB}/users/octocat/events/public",
        FakeResponse(
            200,
            [{"id": "1", "type": "CreateEvent", "created_at": iso(NOW), "repo": {"name": "octocat/toolkit"}, "payload": {"ref_type": "branch"}}],
        ),
    )

    solved = [{"difficulty": "All", "count": 40}, {"difficulty": "Easy", "count": 30}, {"difficulty": "Medium", "count": 10}]
    session.add("POST", LEETCODE_URL, graphql({"matchedUser": {"username": "leeter", "submitStats": {"acSubmissionNum": solved}}}), operation="getUserProfile")
    session.add("POST", LEETCODE_URL, graphql({"userContestRanking": None}), operation="getUserContestRanking")
    session.add(
        "POST",
        LEETCODE_URL,
        graphql({"allQuestionsCount": [], "matchedUser": {"submitStatsGlobal": {"acSubmissionNum": solved}}}),
        operation="getUserProblemsSolved",
    )
    session.add(
        "POST",
        LEETCODE_URL,
        graphql({"recentSubmissionList": [{"title": "Two Sum", "timestamp": str(int(NOW)), "statusDisplay": "Accepted", "lang": "python3"}]}),
        operation="getRecentSubmissions",
    )


def test_run_scoring_writes_both_report_sections(config, services, session, tmp_path, capsys) -> None:
    route_accounts(session)
    report_path = tmp_path / "README.md"
    report_path.write_text(f"# Profile\n\n{SCORE_SUMMARY_START_MARKER}\nstale\n{SCORE_SUMMARY_END_MARKER}\n", encoding="utf-8")

    score = run_scoring(config, services, str(report_path))

    report = report_path.read_text(encoding="utf-8")
    assert "stale" not in report
    assert f"**Developer Score:** {score.overall}/100" in report
    assert GITHUB_ANALYSIS_START_MARKER in report
    assert report.startswith("# Profile\n")
    output = capsys.readouterr().out
    assert "No GITHUB_TOKEN found" in output
    assert "[100%] complete" in output
    assert "README.md updated successfully." in output


def test_run_scoring_requires_both_usernames(config, services, session, tmp_path) -> None:
    config.leetcode_username = ""
    with pytest.raises(ValidationError, match="LEETCODE_USERNAME"):
        run_scoring(config, services, str(tmp_path / "README.md"))
    assert session.calls == []


def test_force_refresh_discards_cached_accounts(config, services, cache, session, tmp_path) -> None:
    route_accounts(session)
    cache.set("github", "profile", "octocat", profile_payload(followers=1))
    cache.set("leetcode", "contest", "leeter", {"ranking": {}, "history": []})
    cache.set("github", "profile", "someone-else", profile_payload("someone-else"))
    config.force_refresh = True

    run_scoring(config, services, str(tmp_path / "README.md"))

    assert len(session.calls_to(f"{GITHUB}/users/octocat")) == 1
    assert cache.get("github", "profile", "octocat")["followers"] == 120
    assert cache.get("github", "profile", "someone-else") is not None


def test_analysis_failure_leaves_report_untouched(config, services, session, tmp_path) -> None:
    session.add("GET", f"{GITHUB}/users/octocat", FakeResponse(404, {}))
    report_path = tmp_path / "README.md"
    report_path.write_text("untouched\n", encoding="utf-8")

    with pytest.raises(AnalysisError):
        run_scoring(config, services, str(report_path))
    assert report_path.read_text(encoding="utf-8") == "untouched\n"


def test_load_config_reads_environment(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GITHUB_USERNAME", " octocat ")
    monkeypatch.setenv("LEETCODE_USERNAME", "leeter")
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("CACHE_TTL_HOURS", "2")
    monkeypatch.setenv("FORCE_REFRESH", "yes")
    monkeypatch.setenv("CACHE_DB_PATH", str(tmp_path / "cache.sqlite3"))
    monkeypatch.delenv("LEETCODE_GRAPHQL_URL", raising=False)

    config = load_config()

    assert config.github_username == "octocat"
    assert config.github_token == "secret"
    assert config.cache_ttl_seconds == 2 * 60 * 60
    assert config.force_refresh is True
    assert config.cache_db_path == str(tmp_path / "cache.sqlite3")
    assert config.leetcode_graphql_url == "https://leetcode.com/graphql"


def test_build_services_share_one_cache(config, session) -> None:
    built = build_services(config, session)
    try:
        assert built.github.cache is built.cache
        assert built.leetcode.cache is built.cache
        assert built.analyzer.github is built.github
        assert built.scoring.leetcode is built.leetcode
        assert built.cache.default_ttl == config.cache_ttl_seconds
        assert built.analyzer.language_complexity["Haskell"] == 8
    finally:
        built.cache.backend.close()
