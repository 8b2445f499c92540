"""Matching engine for job alerts and company subscriptions.

This module provides:
- evaluate_job / matches_job: pure predicate deciding whether a job matches an alert
- subscription_matches: job-type / experience-level filter for subscriptions
- AlertMatchEngine: applies the predicate over a candidate job set
- MatchResult: decision plus the clause that rejected the job
"""

from .engine import AlertMatchEngine, evaluate_job, matches_job, subscription_matches
from .models import (
    CLAUSE_COMPANY,
    CLAUSE_EXCLUDED_COMPANY,
    CLAUSE_EXPERIENCE,
    CLAUSE_JOB_TYPE,
    CLAUSE_KEYWORDS,
    CLAUSE_LOCATION,
    CLAUSE_NOT_CANDIDATE,
    CLAUSE_SALARY,
    CLAUSE_SKILLS,
    MatchResult,
)

__all__ = [
    "AlertMatchEngine",
    "MatchResult",
    "evaluate_job",
    "matches_job",
    "subscription_matches",
    "CLAUSE_COMPANY",
    "CLAUSE_EXCLUDED_COMPANY",
    "CLAUSE_EXPERIENCE",
    "CLAUSE_JOB_TYPE",
    "CLAUSE_KEYWORDS",
    "CLAUSE_LOCATION",
    "CLAUSE_NOT_CANDIDATE",
    "CLAUSE_SALARY",
    "CLAUSE_SKILLS",
]
