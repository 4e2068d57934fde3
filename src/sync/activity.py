"""Window-event filters for the activity-based jobs."""

from datetime import date, datetime, time, timedelta
from typing import Optional

from sources.activitywatch import WindowEvent, sum_duration_by_title


def aggregate_video_titles(
    events: list[WindowEvent],
    min_duration: float,
    separator: str = " - YouTube —",
) -> list[str]:
    """Video titles watched for longer than ``min_duration`` seconds in total.

    Only window titles containing ``separator`` count; the video title is the
    trimmed text before it. Sorted alphabetically.
    """
    totals: dict[str, float] = {}
    for title, seconds in sum_duration_by_title(events).items():
        head, sep, _ = title.partition(separator)
        if not sep:
            continue
        video = head.strip()
        totals[video] = totals.get(video, 0.0) + seconds
    return sorted(title for title, seconds in totals.items() if seconds > min_duration)


def browser_titles(
    events: list[WindowEvent],
    min_duration: float,
    keywords: list[str],
) -> list[str]:
    """Distinct browser window titles of events longer than ``min_duration``."""
    lowered = [k.lower() for k in keywords]
    titles = {
        event.title
        for event in events
        if event.duration > min_duration
        and any(k in event.title.lower() for k in lowered)
    }
    return sorted(titles)


def _local_midnight(day: date, tz) -> datetime:
    if tz is None:
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def day_windows(lookback_days: int, now: Optional[datetime] = None) -> list[tuple[datetime, datetime, date]]:
    """``(start, end, bucket_date)`` for each of the last ``lookback_days`` days.

    Windows span local midnight to local midnight, oldest first, so a day
    crossing a DST change is 23 or 25 hours long. The bucket date is the
    window's end date, so a day is judged once it is complete.
    """
    now = now or datetime.now()
    today = now.date()
    windows = []
    for k in range(lookback_days - 1, -1, -1):
        end_day = today - timedelta(days=k)
        start = _local_midnight(end_day - timedelta(days=1), now.tzinfo)
        end = _local_midnight(end_day, now.tzinfo)
        windows.append((start, end, end_day))
    return windows
