from datetime import datetime, timezone
import pytz
from voiceflow.core.config import settings

def utc_now():
    """Returns the current time in UTC as an aware datetime object."""
    return datetime.now(timezone.utc)

def get_local_tz(name: str = None):
    try:
        return pytz.timezone(name or settings.TIMEZONE)
    except pytz.UnknownTimeZoneError:
        return pytz.utc

def ensure_utc(dt: datetime):
    """Naive datetimes coming back from the DB are stored as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def ensure_local(dt: datetime, tz_name: str = None):
    """Localize naive datetimes to the user's timezone, convert aware ones."""
    tz = get_local_tz(tz_name)
    if dt.tzinfo is None:
        return tz.localize(dt)
    return dt.astimezone(tz)

def format_local_time(dt: datetime, tz_name: str = None):
    """12-hour clock in the user's timezone, e.g. '05:00 PM'."""
    if not dt:
        return "soon"
    return ensure_local(ensure_utc(dt), tz_name).strftime("%I:%M %p")
