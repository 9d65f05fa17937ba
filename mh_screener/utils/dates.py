from datetime import datetime, timezone

def iso_utc(dt: datetime) -> str:
    # naive datetimes are taken to be UTC already
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
