#------------------------------------------------------------
#                          config.py
#   Centralizes environment names, scoring constants, and
#               JSON config loading helpers.

import json
import os
from typing import Dict

# Environment variable names for configuration
ENV_GITHUB_USERNAME = "GITHUB_USERNAME"
ENV_LEETCODE_USERNAME = "LEETCODE_USERNAME"
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_LEETCODE_GRAPHQL_URL = "LEETCODE_GRAPHQL_URL"
ENV_CACHE_DB_PATH = "CACHE_DB_PATH"
ENV_CACHE_TTL_HOURS = "CACHE_TTL_HOURS"
ENV_FORCE_REFRESH = "FORCE_REFRESH"
ENV_REPORT_PATH = "REPORT_PATH"

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}

# Constants for GitHub API interaction
GITHUB_API_ACCEPT_HEADER = "application/vnd.github.v3+json"
GITHUB_API_BASE_URL = "https://api.github.com"
GITHUB_GRAPHQL_URL = "https://api.github.com/graphql"
GITHUB_USER_AGENT = "profile-scorer"
GITHUB_REQUEST_TIMEOUT_SECONDS = 30
GITHUB_DEFAULT_REPO_LIMIT = 100
GITHUB_DEFAULT_ACTIVITY_LIMIT = 10
GITHUB_LANGUAGE_REPO_CAP = 20
GITHUB_LANGUAGE_TOP_N = 8
GITHUB_LANGUAGE_REQUEST_DELAY_SECONDS = 0.1
GITHUB_RECENT_UPDATE_BONUS = 10
GITHUB_SIGNIFICANCE_SCALE = 10.0

# Constants for LeetCode GraphQL interaction
DEFAULT_LEETCODE_GRAPHQL_URL = "https://leetcode.com/graphql"
LEETCODE_REFERER = "https://leetcode.com"
LEETCODE_DEFAULT_SUBMISSION_LIMIT = 20
LEETCODE_LANGUAGE_SUBMISSION_LIMIT = 100
LEETCODE_LANGUAGE_TOP_N = 8
LEETCODE_ACCEPTED_STATUS = "Accepted"

# Cache tiers
DEFAULT_CACHE_TTL_HOURS = 6
DEFAULT_CACHE_TTL_SECONDS = DEFAULT_CACHE_TTL_HOURS * 60 * 60
MEMORY_CACHE_MAX_ENTRIES = 100
CACHE_TABLE_NAME = "api_cache"

# Retry, backoff, and circuit breaker defaults
RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_MAX_DELAY_SECONDS = 10.0
RETRY_BACKOFF_FACTOR = 2
RETRY_MAX_JITTER_SECONDS = 1.0
ERROR_LOG_MAX_SIZE = 100
CIRCUIT_FAILURE_THRESHOLD = 5
CIRCUIT_RESET_TIMEOUT_SECONDS = 60.0

# Activity pattern derivation
ACTIVITY_WEEKS = 52
ACTIVITY_COMMIT_REPO_CAP = 5
ACTIVITY_COMMIT_REQUEST_DELAY_SECONDS = 0.5
ACTIVITY_EVENT_LIMIT = 100
ACTIVITY_CALENDAR_ADDITIONS_PER_CONTRIBUTION = 15
ACTIVITY_CALENDAR_DELETIONS_PER_CONTRIBUTION = 3
ACTIVITY_COMMIT_ADDITIONS_PER_COMMIT = 15
ACTIVITY_COMMIT_DELETIONS_PER_COMMIT = 5
ACTIVITY_EVENT_ADDITIONS_RANGE = (12, 29)
ACTIVITY_EVENT_DELETIONS_RANGE = (2, 9)

# Developer analysis
ANALYSIS_CACHE_SERVICE = "github-analysis"
ANALYSIS_CACHE_METHOD = "full"
ANALYSIS_FALLBACK_LANGUAGE_TOP_N = 10
ANALYSIS_DEPENDENCY_COMPLEXITY = 70
OTHER_CATEGORY = "Other"
OTHER_CATEGORY_COLOR = "#6b7280"

# Keyword, language, and topic signals for each repository category.
REPOSITORY_CATEGORIES = {
    "Web Development": {
        "keywords": ["react", "vue", "angular", "next", "nuxt", "svelte", "web", "frontend", "backend", "fullstack"],
        "languages": ["JavaScript", "TypeScript", "HTML", "CSS", "PHP", "Ruby"],
        "topics": ["web", "frontend", "backend", "fullstack", "webapp", "website"],
        "color": "#3b82f6",
    },
    "Mobile Development": {
        "keywords": ["android", "ios", "mobile", "flutter", "react-native", "ionic", "xamarin"],
        "languages": ["Swift", "Kotlin", "Java", "Dart", "Objective-C"],
        "topics": ["android", "ios", "mobile", "flutter", "react-native"],
        "color": "#10b981",
    },
    "Data Science": {
        "keywords": ["data", "science", "machine", "learning", "ai", "ml", "analytics", "visualization"],
        "languages": ["Python", "R", "Julia", "Scala"],
        "topics": ["data-science", "machine-learning", "ai", "analytics", "visualization"],
        "color": "#f59e0b",
    },
    "DevOps": {
        "keywords": ["docker", "kubernetes", "terraform", "ansible", "jenkins", "ci", "cd", "deployment"],
        "languages": ["Shell", "PowerShell", "YAML", "HCL"],
        "topics": ["devops", "docker", "kubernetes", "ci-cd", "infrastructure"],
        "color": "#ef4444",
    },
    "Game Development": {
        "keywords": ["game", "unity", "unreal", "godot", "pygame", "phaser"],
        "languages": ["C#", "C++", "C", "GDScript"],
        "topics": ["game", "unity", "gamedev", "gaming"],
        "color": "#8b5cf6",
    },
    "System Programming": {
        "keywords": ["system", "kernel", "driver", "embedded", "firmware", "low-level"],
        "languages": ["C", "C++", "Rust", "Assembly", "Go"],
        "topics": ["systems", "embedded", "kernel", "low-level"],
        "color": "#6b7280",
    },
    "Blockchain": {
        "keywords": ["blockchain", "crypto", "ethereum", "bitcoin", "smart", "contract", "defi", "nft"],
        "languages": ["Solidity", "JavaScript", "TypeScript", "Go", "Rust"],
        "topics": ["blockchain", "cryptocurrency", "ethereum", "smart-contracts"],
        "color": "#f97316",
    },
}

# Scoring weights
GITHUB_WEIGHTS = {
    "repository": 0.25,
    "language": 0.20,
    "collaboration": 0.25,
    "complexity": 0.15,
    "activity": 0.15,
}
LEETCODE_WEIGHTS = {
    "problem_solving": 0.35,
    "contest": 0.25,
    "consistency": 0.20,
    "difficulty": 0.20,
}
COMBINED_WEIGHTS = {
    "github": 0.60,
    "leetcode": 0.40,
}
DIFFICULTY_MULTIPLIERS = {"Easy": 1, "Medium": 2, "Hard": 3}
SCORING_REPO_COUNT_CAP = 20
SCORING_RECENT_ACTIVITY_DAYS = 180
SCORING_CONSISTENCY_WINDOW_DAYS = 30
SCORING_SUBMISSION_LIMIT = 50
SCORING_DIFFICULTY_NORMALIZER = 50
SCORING_RANK_CEILING = 100000
SCORING_RANK_DIVISOR = 3333
INTERVIEW_RECOMMENDATION_THRESHOLD = 70

# Readiness bands, highest first.
READINESS_LEVELS = [
    (85, "Excellent - Ready for top-tier companies"),
    (75, "Good - Ready for most companies"),
    (65, "Fair - Need some preparation"),
    (50, "Basic - Significant preparation needed"),
]
DEFAULT_READINESS_LEVEL = "Beginner - Extensive preparation required"

# Tag weights for algorithm coverage; core tags are interview staples.
ALGORITHM_CATEGORIES = {
    "Array": {"weight": 1.0, "core": True},
    "String": {"weight": 1.0, "core": True},
    "Hash Table": {"weight": 1.2, "core": True},
    "Dynamic Programming": {"weight": 2.0, "core": True},
    "Tree": {"weight": 1.5, "core": True},
    "Graph": {"weight": 1.8, "core": True},
    "Binary Search": {"weight": 1.3, "core": True},
    "Two Pointers": {"weight": 1.1, "core": True},
    "Sliding Window": {"weight": 1.4, "core": False},
    "Backtracking": {"weight": 1.7, "core": False},
    "Greedy": {"weight": 1.5, "core": False},
    "Divide and Conquer": {"weight": 1.6, "core": False},
    "Trie": {"weight": 1.8, "core": False},
    "Union Find": {"weight": 1.9, "core": False},
}

# Relative complexity of each language on a 1-10 scale.
LANGUAGE_COMPLEXITY = {
    "Assembly": 10,
    "C": 9,
    "C++": 9,
    "Rust": 8,
    "Go": 7,
    "Java": 7,
    "C#": 6,
    "Python": 5,
    "JavaScript": 5,
    "TypeScript": 6,
    "Ruby": 5,
    "PHP": 4,
    "HTML": 2,
    "CSS": 3,
    "Shell": 6,
    "PowerShell": 5,
}
DEFAULT_LANGUAGE_COMPLEXITY = 5

LANGUAGE_COLORS = {
    "JavaScript": "#f1e05a",
    "TypeScript": "#2b7489",
    "Python": "#3572A5",
    "Python3": "#3572A5",
    "Java": "#b07219",
    "C++": "#f34b7d",
    "C": "#555555",
    "C#": "#239120",
    "PHP": "#4F5D95",
    "Ruby": "#701516",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "Swift": "#ffac45",
    "Kotlin": "#F18E33",
    "Dart": "#00B4AB",
    "Scala": "#c22d40",
    "Elixir": "#6e4a7e",
    "Erlang": "#B83998",
    "Racket": "#3c5caa",
    "HTML": "#e34c26",
    "CSS": "#1572B6",
    "SCSS": "#c6538c",
    "Vue": "#2c3e50",
    "Shell": "#89e051",
    "PowerShell": "#012456",
    "Dockerfile": "#384d54",
    "MySQL": "#4479A1",
    "MS SQL Server": "#CC2927",
}
DEFAULT_LANGUAGE_COLOR = "#586069"

# Markers used in the report file to identify sections for updates.
SCORE_SUMMARY_START_MARKER = "<!-- DEVELOPER_SCORE:start -->"
SCORE_SUMMARY_END_MARKER = "<!-- DEVELOPER_SCORE:end -->"
GITHUB_ANALYSIS_START_MARKER = "<!-- GITHUB_ANALYSIS:start -->"
GITHUB_ANALYSIS_END_MARKER = "<!-- GITHUB_ANALYSIS:end -->"

NO_GITHUB_TOKEN_MESSAGE = "No GITHUB_TOKEN found - anonymous requests are limited to 60 per hour"

# Directory paths for the project and configuration files.
SCRIPTS_DIR = os.path.dirname(os.path.dirname(__file__))
ROOT_DIR = os.path.dirname(SCRIPTS_DIR)
README_PATH = os.path.join(ROOT_DIR, "README.md")
CONFIG_DIR = os.path.join(SCRIPTS_DIR, "config")
LANGUAGE_COMPLEXITY_OVERRIDES_PATH = os.path.join(CONFIG_DIR, "language_complexity_overrides.json")
DEFAULT_CACHE_DB_PATH = os.path.join(ROOT_DIR, ".cache", "api_cache.sqlite3")

def resolve_report_path() -> str:
    configured = os.environ.get(ENV_REPORT_PATH, "").strip()
    if configured:
        if os.path.isabs(configured):
            return configured
        return os.path.join(ROOT_DIR, configured)
    return README_PATH

# This function does resolve the sqlite file backing the persistent cache.
# Relative paths are anchored at the repository root.
def resolve_cache_db_path() -> str:
    configured = os.environ.get(ENV_CACHE_DB_PATH, "").strip()
    if not configured:
        return DEFAULT_CACHE_DB_PATH
    if configured == ":memory:" or os.path.isabs(configured):
        return configured
    return os.path.join(ROOT_DIR, configured)

def resolve_cache_ttl_seconds() -> int:
    configured = os.environ.get(ENV_CACHE_TTL_HOURS, "").strip()
    try:
        hours = float(configured) if configured else DEFAULT_CACHE_TTL_HOURS
    except ValueError:
        hours = DEFAULT_CACHE_TTL_HOURS
    return int(max(hours, 0) * 60 * 60)

def env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in TRUTHY_ENV_VALUES

# This function does load JSON content from disk safely.
# It returns None when the file is missing or invalid.
def _load_json(path: str):
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as file_handle:
            return json.load(file_handle)
    except (OSError, ValueError):
        return None

# This function does load per-language complexity overrides.
# Entries that are not numbers between 1 and 10 are dropped.
def load_language_complexity(path: str = LANGUAGE_COMPLEXITY_OVERRIDES_PATH) -> Dict[str, int]:
    table = dict(LANGUAGE_COMPLEXITY)
    data = _load_json(path)
    if not isinstance(data, dict):
        return table
    for language, value in data.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if 1 <= value <= 10:
            table[str(language).strip()] = int(value)
    return table

def language_color(language: str) -> str:
    return LANGUAGE_COLORS.get(language, DEFAULT_LANGUAGE_COLOR)
