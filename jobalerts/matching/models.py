"""Data models for the matching engine."""

from dataclasses import dataclass
from typing import Optional


# Clause names reported in MatchResult.rejected_by
CLAUSE_EXCLUDED_COMPANY = "exclude_companies"
CLAUSE_KEYWORDS = "keywords"
CLAUSE_SKILLS = "skills"
CLAUSE_LOCATION = "location"
CLAUSE_JOB_TYPE = "job_types"
CLAUSE_EXPERIENCE = "experience_levels"
CLAUSE_SALARY = "salary_range"
CLAUSE_COMPANY = "companies"
CLAUSE_NOT_CANDIDATE = "not_candidate"


@dataclass(frozen=True)
class MatchResult:
    """Result of evaluating a job against an alert's criteria.

    Attributes:
        is_match: True if every clause passed
        rejected_by: Name of the first clause that rejected the job, if any
    """

    is_match: bool
    rejected_by: Optional[str] = None

    @classmethod
    def accepted(cls) -> "MatchResult":
        return cls(is_match=True)

    @classmethod
    def rejected(cls, clause: str) -> "MatchResult":
        return cls(is_match=False, rejected_by=clause)
