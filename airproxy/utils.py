#file: airproxy/utils.py

from datetime import datetime
import pytz


def get_current_time() -> str:
    """Get current UTC time as an ISO formatted string."""
    return datetime.now(pytz.utc).isoformat()


def round1(value: float) -> float:
    """Round to one decimal place, the precision the dashboard displays."""
    return round(float(value) * 10) / 10
