"""Rule-based matching of job postings against alerts and subscriptions.

This module implements:
1. evaluate_job / matches_job: the pure alert predicate
2. subscription_matches: the job-type / experience-level filter used for
   company subscriptions
3. AlertMatchEngine: applies the predicate over a candidate job set
"""

import logging
from typing import Iterable, List, Optional, Sequence

from jobalerts.domain.models import JobAlert, JobCandidate, LocationType, Subscription

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

logger = logging.getLogger(__name__)


def evaluate_job(alert: JobAlert, job: JobCandidate) -> MatchResult:
    """Evaluate a job against an alert's criteria.

    Clauses form a short-circuiting conjunction; the first failing clause
    rejects the job. Empty or missing criteria never constrain. The company
    deny-list is checked first because it overrides every other clause.

    Algorithm:
    1. Deny-list: job's company must not be excluded
    2. Keywords: any keyword is a substring of title + description
    3. Skills: any job skill contains any criteria skill
    4. Location: job location type equals criteria type unless "any"
    5. Job type and experience level membership
    6. Salary: job min <= criteria max and job max >= criteria min
    7. Allow-list: job's company is listed

    Industries and location city/state/country/radius are not evaluated.

    Args:
        alert: JobAlert whose criteria are applied
        job: Job posting to evaluate

    Returns:
        MatchResult with the decision and the rejecting clause
    """
    if alert.exclude_companies and job.company_id in alert.exclude_companies:
        return MatchResult.rejected(CLAUSE_EXCLUDED_COMPANY)

    keywords = _non_empty_lower(alert.keywords)
    if keywords:
        job_text = f"{job.title} {job.description}".lower()
        if not any(keyword in job_text for keyword in keywords):
            return MatchResult.rejected(CLAUSE_KEYWORDS)

    skills = _non_empty_lower(alert.skills)
    if skills:
        job_skills = [skill.lower() for skill in job.requirements.skills if skill]
        if not any(skill in job_skill for skill in skills for job_skill in job_skills):
            return MatchResult.rejected(CLAUSE_SKILLS)

    location_type = alert.location.type if alert.location else LocationType.ANY
    if location_type and location_type != LocationType.ANY:
        if job.location.type != location_type:
            return MatchResult.rejected(CLAUSE_LOCATION)

    if alert.job_types and job.job_type not in alert.job_types:
        return MatchResult.rejected(CLAUSE_JOB_TYPE)

    if alert.experience_levels and job.experience_level not in alert.experience_levels:
        return MatchResult.rejected(CLAUSE_EXPERIENCE)

    if not _salary_overlaps(alert, job):
        return MatchResult.rejected(CLAUSE_SALARY)

    if alert.companies and job.company_id not in alert.companies:
        return MatchResult.rejected(CLAUSE_COMPANY)

    return MatchResult.accepted()


def matches_job(alert: JobAlert, job: JobCandidate) -> bool:
    """Return True if the job satisfies every clause of the alert."""
    return evaluate_job(alert, job).is_match


def subscription_matches(subscription: Subscription, job: JobCandidate) -> bool:
    """Apply a company subscription's job-type and experience-level filters.

    An empty filter list accepts any value. The company itself is not
    checked here; callers load subscriptions by the job's company.
    """
    if subscription.job_types and job.job_type not in subscription.job_types:
        return False
    if subscription.experience_levels and job.experience_level not in subscription.experience_levels:
        return False
    return True


def _non_empty_lower(terms: Optional[Iterable[str]]) -> List[str]:
    return [term.strip().lower() for term in terms or [] if term and term.strip()]


def _salary_overlaps(alert: JobAlert, job: JobCandidate) -> bool:
    wanted = alert.salary_range
    if wanted is None or (not wanted.min and not wanted.max):
        return True

    # A job cannot be excluded by a bound it never declared
    if job.salary.min and wanted.max and job.salary.min > wanted.max:
        return False
    if job.salary.max and wanted.min and job.salary.max < wanted.min:
        return False
    return True


class AlertMatchEngine:
    """Applies the alert predicate over a candidate job set.

    Candidate sets are small (jobs created within one alert window), so this
    is a linear scan rather than an index.
    """

    def __init__(self, logger_instance: logging.Logger = None):
        self.logger = logger_instance or logger

    def find_matches(
        self, alert: JobAlert, candidate_jobs: Sequence[JobCandidate]
    ) -> List[JobCandidate]:
        """Return the jobs that match the alert, preserving input order.

        Inactive or deleted jobs are never matched.

        Args:
            alert: JobAlert whose criteria are applied
            candidate_jobs: Jobs to evaluate (already unique)

        Returns:
            List of matching jobs in input order
        """
        matches: List[JobCandidate] = []
        rejections = {}

        for job in candidate_jobs:
            if not job.is_candidate:
                result = MatchResult.rejected(CLAUSE_NOT_CANDIDATE)
            else:
                result = evaluate_job(alert, job)

            if result.is_match:
                matches.append(job)
            else:
                rejections[result.rejected_by] = rejections.get(result.rejected_by, 0) + 1

        self.logger.debug(
            f"Alert {alert.id} matched {len(matches)} of {len(candidate_jobs)} jobs",
            extra={
                "alert_id": alert.id,
                "candidate_count": len(candidate_jobs),
                "match_count": len(matches),
                "rejections": rejections,
            },
        )

        return matches
