#------------------------------------------------------------
#                          models.py
#     Defines dataclasses used by the scoring pipeline and
#       the normalizers that build them from API payloads.

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional
from .config import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_LEETCODE_GRAPHQL_URL,
    DEFAULT_CACHE_DB_PATH,
)

# This function does coerce optional upstream numbers to ints.
# Missing or malformed values become zero.
def _int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0

def _float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0

def _str(value: Any) -> str:
    return str(value) if value is not None else ""

def _list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []

def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}

# This function does rebuild a flat dataclass from a cached dict.
# Unknown keys are ignored so older cache rows still load.
def _from_flat_dict(cls, data: Optional[dict]):
    data = _dict(data)
    names = {item.name for item in fields(cls)}
    return cls(**{key: value for key, value in data.items() if key in names})

class Record:

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

@dataclass
class ScorerConfig:
    github_username: str = ""
    leetcode_username: str = ""
    github_token: str = ""
    leetcode_graphql_url: str = DEFAULT_LEETCODE_GRAPHQL_URL
    cache_db_path: str = DEFAULT_CACHE_DB_PATH
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    force_refresh: bool = False

@dataclass
class CacheEntry(Record):
    key: str
    data: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

@dataclass
class ErrorRecord(Record):
    timestamp: str
    type: str
    context: Dict[str, Any]
    can_retry: bool
    user_message: str
    details: str = ""
    retry_after: Optional[str] = None

#------------------------------------------------------------
# GitHub records

@dataclass
class GitHubProfile(Record):
    id: int
    login: str
    name: str = ""
    bio: str = ""
    location: str = ""
    company: str = ""
    blog: str = ""
    email: str = ""
    avatar_url: str = ""
    html_url: str = ""
    followers: int = 0
    following: int = 0
    public_repos: int = 0
    public_gists: int = 0
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "GitHubProfile":
        data = _dict(data)
        login = _str(data.get("login"))
        return cls(
            id=_int(data.get("id")),
            login=login,
            name=data.get("name") or login,
            bio=data.get("bio") or "",
            location=data.get("location") or "",
            company=data.get("company") or "",
            blog=data.get("blog") or "",
            email=data.get("email") or "",
            avatar_url=data.get("avatar_url") or "",
            html_url=data.get("html_url") or "",
            followers=_int(data.get("followers")),
            following=_int(data.get("following")),
            public_repos=_int(data.get("public_repos")),
            public_gists=_int(data.get("public_gists")),
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
        )

    @classmethod
    def from_dict(cls, data: dict) -> "GitHubProfile":
        return _from_flat_dict(cls, data)

@dataclass
class Repository(Record):
    id: int
    name: str
    full_name: str = ""
    description: str = ""
    html_url: str = ""
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    watchers_count: int = 0
    size: int = 0
    default_branch: str = "main"
    topics: List[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
    pushed_at: str = ""
    private: bool = False
    fork: bool = False
    archived: bool = False
    has_wiki: bool = False
    has_pages: bool = False
    license: str = ""

    @property
    def is_active(self) -> bool:
        return not self.fork and not self.archived

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0] if "/" in self.full_name else ""

    @classmethod
    def from_api(cls, data: dict) -> "Repository":
        data = _dict(data)
        license_info = _dict(data.get("license"))
        return cls(
            id=_int(data.get("id")),
            name=_str(data.get("name")),
            full_name=data.get("full_name") or "",
            description=data.get("description") or "",
            html_url=data.get("html_url") or "",
            language=data.get("language") or None,
            stargazers_count=_int(data.get("stargazers_count")),
            forks_count=_int(data.get("forks_count")),
            watchers_count=_int(data.get("watchers_count")),
            size=_int(data.get("size")),
            default_branch=data.get("default_branch") or "main",
            topics=[str(topic) for topic in _list(data.get("topics"))],
            created_at=data.get("created_at") or "",
            updated_at=data.get("updated_at") or "",
            pushed_at=data.get("pushed_at") or "",
            private=bool(data.get("private")),
            fork=bool(data.get("fork")),
            archived=bool(data.get("archived")),
            has_wiki=bool(data.get("has_wiki")),
            has_pages=bool(data.get("has_pages")),
            license=license_info.get("name") or "",
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Repository":
        return _from_flat_dict(cls, data)

@dataclass
class ActivityEvent(Record):
    id: str
    type: str
    created_at: str
    payload: Dict[str, str]
    repo_name: str = ""
    repo_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "ActivityEvent":
        return _from_flat_dict(cls, data)

@dataclass
class CommitWeek(Record):
    week: int
    total: int = 0
    days: List[int] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "CommitWeek":
        data = _dict(data)
        return cls(
            week=_int(data.get("week")),
            total=_int(data.get("total")),
            days=[_int(day) for day in _list(data.get("days"))],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "CommitWeek":
        return _from_flat_dict(cls, data)

@dataclass
class LanguageStat(Record):
    language: str
    size: float
    percentage: float
    color: str
    proficiency: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "LanguageStat":
        return _from_flat_dict(cls, data)

#------------------------------------------------------------
# LeetCode records

@dataclass
class DifficultyCount(Record):
    difficulty: str
    count: int = 0
    submissions: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "DifficultyCount":
        data = _dict(data)
        return cls(
            difficulty=_str(data.get("difficulty")),
            count=_int(data.get("count")),
            submissions=_int(data.get("submissions")),
        )

    @classmethod
    def list_from_api(cls, items: Any) -> List["DifficultyCount"]:
        return [cls.from_api(item) for item in _list(items) if isinstance(item, dict)]

@dataclass
class LeetCodeProfile(Record):
    username: str
    real_name: str = ""
    about_me: str = ""
    avatar: str = ""
    location: str = ""
    websites: List[str] = field(default_factory=list)
    skill_tags: List[str] = field(default_factory=list)
    company: str = ""
    school: str = ""
    ranking: int = 0
    accepted_stats: List[DifficultyCount] = field(default_factory=list)
    total_stats: List[DifficultyCount] = field(default_factory=list)
    badges: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_api(cls, matched_user: dict) -> "LeetCodeProfile":
        matched_user = _dict(matched_user)
        profile = _dict(matched_user.get("profile"))
        submit_stats = _dict(matched_user.get("submitStats"))
        return cls(
            username=_str(matched_user.get("username")),
            real_name=profile.get("realName") or "",
            about_me=profile.get("aboutMe") or "",
            avatar=profile.get("userAvatar") or "",
            location=profile.get("countryName") or profile.get("location") or "",
            websites=[str(item) for item in _list(profile.get("websites"))],
            skill_tags=[str(item) for item in _list(profile.get("skillTags"))],
            company=profile.get("company") or "",
            school=profile.get("school") or "",
            ranking=_int(profile.get("ranking")),
            accepted_stats=DifficultyCount.list_from_api(submit_stats.get("acSubmissionNum")),
            total_stats=DifficultyCount.list_from_api(submit_stats.get("totalSubmissionNum")),
            badges=[
                {
                    "id": _str(badge.get("id")),
                    "display_name": badge.get("displayName") or "",
                    "icon": badge.get("icon") or "",
                    "creation_date": badge.get("creationDate") or "",
                }
                for badge in _list(matched_user.get("badges"))
                if isinstance(badge, dict)
            ],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "LeetCodeProfile":
        profile = _from_flat_dict(cls, data)
        profile.accepted_stats = [_from_flat_dict(DifficultyCount, item) for item in profile.accepted_stats]
        profile.total_stats = [_from_flat_dict(DifficultyCount, item) for item in profile.total_stats]
        return profile

@dataclass
class ContestRanking(Record):
    attended_contests_count: int = 0
    rating: float = 0.0
    global_ranking: int = 0
    total_participants: int = 0
    top_percentage: float = 0.0
    badge: str = ""

    @classmethod
    def from_api(cls, data: Any) -> "ContestRanking":
        data = _dict(data)
        return cls(
            attended_contests_count=_int(data.get("attendedContestsCount")),
            rating=_float(data.get("rating")),
            global_ranking=_int(data.get("globalRanking")),
            total_participants=_int(data.get("totalParticipants")),
            top_percentage=_float(data.get("topPercentage")),
            badge=_dict(data.get("badge")).get("name") or "",
        )

@dataclass
class ContestHistory(Record):
    attended: bool = False
    trend_direction: str = ""
    problems_solved: int = 0
    total_problems: int = 0
    finish_time_in_seconds: int = 0
    rating: float = 0.0
    ranking: int = 0
    contest_title: str = ""
    contest_start_time: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "ContestHistory":
        contest = _dict(data.get("contest"))
        return cls(
            attended=bool(data.get("attended")),
            trend_direction=data.get("trendDirection") or "",
            problems_solved=_int(data.get("problemsSolved")),
            total_problems=_int(data.get("totalProblems")),
            finish_time_in_seconds=_int(data.get("finishTimeInSeconds")),
            rating=_float(data.get("rating")),
            ranking=_int(data.get("ranking")),
            contest_title=contest.get("title") or "",
            contest_start_time=_int(contest.get("startTime")),
        )

@dataclass
class ContestData(Record):
    ranking: ContestRanking = field(default_factory=ContestRanking)
    history: List[ContestHistory] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "ContestData":
        data = _dict(data)
        return cls(
            ranking=ContestRanking.from_api(data.get("userContestRanking")),
            history=[
                ContestHistory.from_api(item)
                for item in _list(data.get("userContestRankingHistory"))
                if isinstance(item, dict)
            ],
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ContestData":
        data = _dict(data)
        return cls(
            ranking=_from_flat_dict(ContestRanking, data.get("ranking")),
            history=[_from_flat_dict(ContestHistory, item) for item in _list(data.get("history"))],
        )

@dataclass
class Submission(Record):
    title: str
    title_slug: str = ""
    timestamp: int = 0
    status: str = ""
    language: str = ""
    runtime: str = ""
    memory: str = ""
    url: str = ""
    is_pending: bool = False
    has_notes: bool = False
    notes: str = ""

    @classmethod
    def from_api(cls, data: dict) -> "Submission":
        data = _dict(data)
        is_pending = data.get("isPending")
        return cls(
            title=data.get("title") or "",
            title_slug=data.get("titleSlug") or "",
            timestamp=_int(data.get("timestamp")),
            status=data.get("statusDisplay") or "",
            language=data.get("lang") or "",
            runtime=data.get("runtime") or "",
            memory=data.get("memory") or "",
            url=data.get("url") or "",
            is_pending=is_pending is True or str(is_pending).lower() in ("true", "pending"),
            has_notes=bool(data.get("hasNotes")),
            notes=data.get("notes") or "",
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Submission":
        return _from_flat_dict(cls, data)

@dataclass
class TagCount(Record):
    tag_name: str
    tag_slug: str = ""
    problems_solved: int = 0
    level: str = ""

@dataclass
class ProblemStats(Record):
    total_questions: List[DifficultyCount] = field(default_factory=list)
    solved_stats: List[DifficultyCount] = field(default_factory=list)
    beats_stats: Dict[str, float] = field(default_factory=dict)
    tag_stats: List[TagCount] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "ProblemStats":
        data = _dict(data)
        matched_user = _dict(data.get("matchedUser"))
        submit_stats = _dict(matched_user.get("submitStatsGlobal"))
        tag_counts = _dict(matched_user.get("tagProblemCounts"))
        tags = []
        for level in ("fundamental", "intermediate", "advanced"):
            for item in _list(tag_counts.get(level)):
                if not isinstance(item, dict):
                    continue
                tags.append(
                    TagCount(
                        tag_name=item.get("tagName") or "",
                        tag_slug=item.get("tagSlug") or "",
                        problems_solved=_int(item.get("problemsSolved")),
                        level=level,
                    )
                )
        return cls(
            total_questions=DifficultyCount.list_from_api(data.get("allQuestionsCount")),
            solved_stats=DifficultyCount.list_from_api(submit_stats.get("acSubmissionNum")),
            beats_stats={
                _str(item.get("difficulty")): _float(item.get("percentage"))
                for item in _list(matched_user.get("problemsSolvedBeatsStats"))
                if isinstance(item, dict)
            },
            tag_stats=tags,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "ProblemStats":
        data = _dict(data)
        return cls(
            total_questions=[_from_flat_dict(DifficultyCount, item) for item in _list(data.get("total_questions"))],
            solved_stats=[_from_flat_dict(DifficultyCount, item) for item in _list(data.get("solved_stats"))],
            beats_stats={str(key): _float(value) for key, value in _dict(data.get("beats_stats")).items()},
            tag_stats=[_from_flat_dict(TagCount, item) for item in _list(data.get("tag_stats"))],
        )

    @property
    def total_solved(self) -> int:
        # acSubmissionNum carries an "All" row alongside the per-difficulty rows
        return sum(stat.count for stat in self.solved_stats if stat.difficulty != "All")

#------------------------------------------------------------
# Analysis records

@dataclass
class RepositoryCategory(Record):
    category: str
    count: int
    percentage: float
    repositories: List[str]
    color: str

@dataclass
class ActivityWeek(Record):
    date: str
    commits: int = 0
    additions: int = 0
    deletions: int = 0
    repositories: List[str] = field(default_factory=list)

@dataclass
class CollaborationMetrics(Record):
    engagement_score: float
    average_stars_per_repo: float
    average_forks_per_repo: float
    community_health: float
    total_contributors: int = 0
    issue_response_time: float = 0.0

@dataclass
class ProjectComplexity(Record):
    complexity_score: float
    average_repo_size: float
    multi_language_projects: int
    documentation_quality: float
    dependency_complexity: float

@dataclass
class DeveloperClassification(Record):
    primary_role: str
    confidence: float
    skills: List[str]
    experience: str
    specializations: List[str]

@dataclass
class ImpactMetrics(Record):
    total_stars: int
    total_forks: int
    project_reach: int
    community_impact: float
    code_quality: float

@dataclass
class DeveloperAnalysis(Record):
    username: str
    profile: GitHubProfile
    language_stats: List[LanguageStat]
    repository_categories: List[RepositoryCategory]
    activity_patterns: List[ActivityWeek]
    collaboration_metrics: CollaborationMetrics
    project_complexity: ProjectComplexity
    developer_classification: DeveloperClassification
    impact_metrics: ImpactMetrics
    last_analyzed: str
    cache_expiry: str

    @classmethod
    def from_dict(cls, data: dict) -> "DeveloperAnalysis":
        data = _dict(data)
        return cls(
            username=_str(data.get("username")),
            profile=GitHubProfile.from_dict(data.get("profile")),
            language_stats=[LanguageStat.from_dict(item) for item in _list(data.get("language_stats"))],
            repository_categories=[
                _from_flat_dict(RepositoryCategory, item) for item in _list(data.get("repository_categories"))
            ],
            activity_patterns=[_from_flat_dict(ActivityWeek, item) for item in _list(data.get("activity_patterns"))],
            collaboration_metrics=_from_flat_dict(CollaborationMetrics, data.get("collaboration_metrics")),
            project_complexity=_from_flat_dict(ProjectComplexity, data.get("project_complexity")),
            developer_classification=_from_flat_dict(DeveloperClassification, data.get("developer_classification")),
            impact_metrics=_from_flat_dict(ImpactMetrics, data.get("impact_metrics")),
            last_analyzed=_str(data.get("last_analyzed")),
            cache_expiry=_str(data.get("cache_expiry")),
        )

@dataclass
class AnalysisProgress(Record):
    stage: str
    progress: int
    current_task: str
    estimated_time_remaining: int

#------------------------------------------------------------
# Scoring records

@dataclass
class GitHubScore(Record):
    overall: int
    repository: int
    language: int
    collaboration: int
    complexity: int
    activity: int
    details: Dict[str, Any] = field(default_factory=dict)

@dataclass
class LeetCodeScore(Record):
    overall: int
    problem_solving: int
    contest: int
    consistency: int
    difficulty: int
    details: Dict[str, Any] = field(default_factory=dict)

@dataclass
class ScoreBreakdown(Record):
    strengths: List[str]
    weaknesses: List[str]
    balance_score: int
    skill_distribution: Dict[str, int]

@dataclass
class Recommendation(Record):
    category: str
    priority: str
    action: str
    description: str

@dataclass
class InterviewReadiness(Record):
    overall: int
    algorithm: int
    system_design: int
    coding: int
    behavioral: int
    readiness_level: str
    recommendations: List[str] = field(default_factory=list)

@dataclass
class UnifiedScore(Record):
    overall: int
    github: GitHubScore
    leetcode: LeetCodeScore
    breakdown: ScoreBreakdown
    recommendations: List[Recommendation]
    interview_readiness: InterviewReadiness
