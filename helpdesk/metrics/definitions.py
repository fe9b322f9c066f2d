"""Metric definitions registered at import time."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name="ticket_transitions_total",
        metric_type="counter",
        description="Ticket status changes committed by the lifecycle.",
        label_names=("from_status", "to_status"),
    ),
    MetricDefinition(
        name="automation_tasks_total",
        metric_type="counter",
        description="Automation tasks finished, by task type and final status.",
        label_names=("task_type", "status"),
    ),
    MetricDefinition(
        name="automation_task_retries_total",
        metric_type="counter",
        description="Automation task attempts that failed and were scheduled for retry.",
        label_names=("task_type",),
    ),
    MetricDefinition(
        name="automation_task_failures_total",
        metric_type="counter",
        description="Automation tasks that exhausted their attempts.",
        label_names=("task_type",),
    ),
    MetricDefinition(
        name="automation_task_duration_seconds",
        metric_type="distribution",
        description="Duration of individual automation task attempts in seconds.",
        label_names=("task_type",),
    ),
)
