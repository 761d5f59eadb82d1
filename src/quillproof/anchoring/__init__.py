from quillproof.anchoring.calendar import (
    DEFAULT_CALENDAR_URL,
    AnchorClient,
    OpenTimestampsCalendar,
    Timestamp,
)

__all__ = [
    "DEFAULT_CALENDAR_URL",
    "AnchorClient",
    "OpenTimestampsCalendar",
    "Timestamp",
]
