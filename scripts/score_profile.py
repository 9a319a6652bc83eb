#!/usr/bin/env python3
"""
Score a developer from their GitHub and LeetCode accounts and write the
result into the marker-delimited sections of a markdown report.

Markers used in the report (appended when missing):
  <!-- DEVELOPER_SCORE:start -->  ... <!-- DEVELOPER_SCORE:end -->
  <!-- GITHUB_ANALYSIS:start -->  ... <!-- GITHUB_ANALYSIS:end -->

Environment variables:
  GITHUB_USERNAME: GitHub account to score (required)
  LEETCODE_USERNAME: LeetCode account to score (required)
  GITHUB_TOKEN: Personal access token; raises the API rate limit
  LEETCODE_GRAPHQL_URL: GraphQL endpoint or proxy for LeetCode
  CACHE_DB_PATH: sqlite file for cached API responses
  CACHE_TTL_HOURS: How long cached responses stay fresh (default: 6)
  FORCE_REFRESH: Set to 1/true/yes to discard cached data first
  REPORT_PATH: Markdown file to update (default: README.md)
"""

import sys

from profile_scorer.controller import run_scoring
from profile_scorer.errors import ProfileScorerError


def main():
    try:
        run_scoring()
    except ProfileScorerError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
