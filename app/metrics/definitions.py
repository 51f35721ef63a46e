"""Metric definitions used across the application."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

NOTIFICATIONS_SENT = "notifications_sent_total"
NOTIFICATION_FAILURES = "notification_failures_total"
BACKGROUND_JOBS = "background_jobs_total"
BACKGROUND_JOB_FAILURES = "background_job_failures_total"
BACKGROUND_JOB_DURATION = "background_job_duration_seconds"
UPLOAD_FAILURES = "upload_failures_total"


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=NOTIFICATIONS_SENT,
        metric_type="counter",
        description="Emails accepted by the delivery provider.",
        label_names=("kind",),
    ),
    MetricDefinition(
        name=NOTIFICATION_FAILURES,
        metric_type="counter",
        description="Emails the delivery provider rejected or that failed in transit.",
        label_names=("kind",),
    ),
    MetricDefinition(
        name=BACKGROUND_JOBS,
        metric_type="counter",
        description="Background jobs submitted to the notification dispatcher.",
        label_names=("kind",),
    ),
    MetricDefinition(
        name=BACKGROUND_JOB_FAILURES,
        metric_type="counter",
        description="Background jobs that raised an unexpected exception.",
        label_names=("kind",),
    ),
    MetricDefinition(
        name=BACKGROUND_JOB_DURATION,
        metric_type="distribution",
        description="Duration of background jobs in seconds.",
        label_names=("kind",),
    ),
    MetricDefinition(
        name=UPLOAD_FAILURES,
        metric_type="counter",
        description="File uploads rejected by the object store.",
    ),
)
