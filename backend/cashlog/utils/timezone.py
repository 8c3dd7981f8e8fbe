from datetime import date, datetime
from zoneinfo import ZoneInfo

from cashlog.core.config import settings

LOCAL_TZ = ZoneInfo(settings.timezone)


def now_local() -> datetime:
    return datetime.now(tz=LOCAL_TZ)


def today_local() -> date:
    return now_local().date()
