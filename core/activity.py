"""
Reshape Google Fit ``dataset:aggregate`` responses into the dashboard card.

Pure functions over the decoded JSON; the HTTP side lives in
``services/google_fit.py``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable

Bucket = dict[str, Any]


@dataclass
class ActivitySummary:
    dates: list[str] = field(default_factory=list)    # weekday labels, oldest first
    steps: list[int] = field(default_factory=list)    # steps per day, same order
    today_steps: int = 0
    today_heart_rate: int = 0
    today_calories_burned: int = 0
    today_sleep: str = "--"
    is_connected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _bucket_start(bucket: Bucket) -> datetime:
    return datetime.fromtimestamp(int(bucket["startTimeMillis"]) / 1000, tz=timezone.utc)


def _dataset(bucket: Bucket, needle: str) -> dict[str, Any] | None:
    for ds in bucket.get("dataset", []):
        if needle in ds.get("dataSourceId", ""):
            return ds
    return None


def _step_total(bucket: Bucket) -> int:
    ds = _dataset(bucket, "step_count")
    if ds is None:
        return 0
    return sum(p["value"][0].get("intVal", 0) or 0 for p in ds.get("point", []))


def _sleep_millis(bucket: Bucket) -> float:
    ds = _dataset(bucket, "sleep")
    if ds is None:
        return 0.0
    return sum(
        (int(p["endTimeNanos"]) - int(p["startTimeNanos"])) / 1e6
        for p in ds.get("point", [])
    )


def format_sleep(total_millis: float) -> str:
    minutes = int(total_millis // 1000 // 60)
    return f"{minutes // 60}h {minutes % 60}m"


def latest_heart_rate(buckets: Iterable[Bucket]) -> int:
    """Most recent heart-rate reading across minute buckets, 0 if none."""
    for bucket in reversed(list(buckets)):
        datasets = bucket.get("dataset") or []
        if datasets and datasets[0].get("point"):
            return round(datasets[0]["point"][-1]["value"][0].get("fpVal", 0))
    return 0


def summarize(
    history: list[Bucket],
    heart_rate: list[Bucket],
    today: str,
) -> ActivitySummary:
    """
    ``history``: daily buckets (steps, calories expended, sleep segments).
    ``heart_rate``: minute buckets of bpm for the last 24h.
    ``today``: UTC calendar day (YYYY-MM-DD) whose bucket feeds the today_* fields.
    Sleep is totalled over the whole window since sessions cross midnight.
    """
    summary = ActivitySummary(is_connected=True)
    today_bucket: Bucket | None = None
    sleep_ms = 0.0

    for bucket in history:
        start = _bucket_start(bucket)
        summary.dates.append(start.strftime("%a"))
        summary.steps.append(_step_total(bucket))
        if start.date().isoformat() == today:
            today_bucket = bucket
        sleep_ms += _sleep_millis(bucket)

    if today_bucket is not None:
        summary.today_steps = _step_total(today_bucket)
        cal = _dataset(today_bucket, "calories")
        if cal and cal.get("point"):
            summary.today_calories_burned = round(cal["point"][0]["value"][0].get("fpVal", 0) or 0)

    summary.today_sleep = format_sleep(sleep_ms)
    summary.today_heart_rate = latest_heart_rate(heart_rate)
    return summary
