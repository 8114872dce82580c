"""
Release Freshness Validation

Two-tier staleness policy: a per-application maximum age (with optional
version exemptions) and a global ceiling that applies to every application
with an age policy, exempted or not. ``validate`` is a pure function of its
arguments.
"""

from datetime import datetime
from typing import Optional

from apkresolver.constants import DEFAULT_GLOBAL_MAX_AGE_DAYS

from .models import (
    ApplicationDescriptor,
    FetchResult,
    ParseFailure,
    ResolutionOutcome,
    StaleRelease,
    Success,
)


def release_age_days(published_at: datetime, now: datetime) -> int:
    """
    Whole days elapsed between publication and now.

    Publish times in the future (clock skew) count as age 0.

    Raises:
        ValueError: If either timestamp is naive.
    """
    if published_at.tzinfo is None or now.tzinfo is None:
        raise ValueError("Release age requires timezone-aware timestamps")
    return max(0, (now - published_at).days)


def is_exempt(result: FetchResult, policy: ApplicationDescriptor) -> bool:
    return result.version.version_text in policy.age_check_exempt_versions


def validate(
    result: FetchResult,
    policy: ApplicationDescriptor,
    now: datetime,
    global_max_age_days: Optional[int] = DEFAULT_GLOBAL_MAX_AGE_DAYS,
) -> ResolutionOutcome:
    """
    Apply the freshness policy of an application to a fetched release.

    Args:
        result: The canonical fetch result.
        policy: Descriptor carrying ``max_age_days`` and exempt versions.
        now: Current time (timezone aware).
        global_max_age_days: Hard ceiling for every enforced policy; None disables it.

    Returns:
        Success when fresh or when the app has no age policy, StaleRelease with the
        exceeded threshold otherwise, or ParseFailure if an enforced policy meets a
        release without publish timestamp.
    """
    if policy.max_age_days is None:
        return Success(result)

    if result.publish_timestamp is None:
        return ParseFailure(
            f"publish timestamp missing for {policy.app_id} "
            f"{result.version.version_text}"
        )

    age = release_age_days(result.publish_timestamp, now)

    if not is_exempt(result, policy) and age >= policy.max_age_days:
        return StaleRelease(age, policy.max_age_days, result)

    if global_max_age_days is not None and age >= global_max_age_days:
        return StaleRelease(age, global_max_age_days, result)

    return Success(result)
