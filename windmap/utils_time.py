from datetime import datetime, timezone

def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def parse_sample_date(s: str) -> datetime:
    # "2013-08-24T16:00:00+09:00", "...Z" or naive (taken as UTC)
    return ensure_utc(datetime.fromisoformat(s.strip().replace("Z", "+00:00")))

def cycle_key(observed: datetime) -> str:
    # stations report hourly: one rendered field per UTC observation hour
    return format(ensure_utc(observed), "%Y%m%d_%H00Z")  # 20130824_0700Z
