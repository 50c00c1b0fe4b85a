from datetime import datetime, timedelta, timezone
from typing import Optional

from blog.config import settings


class DateFormatter:
    """
    Renders stored article/comment timestamps for display.

    Timestamps are stored naive, as wall-clock time at a fixed source
    offset (CEST by default). They are shifted to the display offset and
    rendered as ``"<date> at <time>"``.
    """

    def __init__(
        self,
        source_offset_hours: int = 2,
        source_label: str = "CEST",
        display_offset_hours: int = 0,
        date_format: str = "%b %d, %Y",
        time_format: str = "%I:%M:%S %p",
    ) -> None:
        self.source_tz = timezone(timedelta(hours=source_offset_hours), source_label)
        self.display_tz = timezone(timedelta(hours=display_offset_hours))
        self.date_format = date_format
        self.time_format = time_format

    def localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.source_tz)
        return value.astimezone(self.display_tz)

    def format(self, value: Optional[datetime]) -> Optional[str]:
        if value is None:
            return None
        local = self.localize(value)
        return f"{local.strftime(self.date_format)} at {local.strftime(self.time_format)}"


def get_formatter() -> DateFormatter:
    """FastAPI dependency building the formatter from settings."""
    return DateFormatter(
        source_offset_hours=settings.SOURCE_UTC_OFFSET_HOURS,
        source_label=settings.SOURCE_OFFSET_LABEL,
        display_offset_hours=settings.DISPLAY_UTC_OFFSET_HOURS,
        date_format=settings.DATE_FORMAT,
        time_format=settings.TIME_FORMAT,
    )
