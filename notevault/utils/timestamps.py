import time
import uuid


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


def new_record_id() -> str:
    return str(uuid.uuid4())
