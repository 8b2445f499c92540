"""Test helper utilities for job alert service tests."""

from .factories import (
    T0,
    FakeClock,
    RecordingDispatcher,
    hours,
    load_alert,
    load_subscription,
    make_alert,
    make_company,
    make_job,
    make_recipient,
    make_subscription,
    overwrite_columns,
    seed,
)

__all__ = [
    "T0",
    "FakeClock",
    "RecordingDispatcher",
    "hours",
    "load_alert",
    "load_subscription",
    "make_alert",
    "make_company",
    "make_job",
    "make_recipient",
    "make_subscription",
    "overwrite_columns",
    "seed",
]
