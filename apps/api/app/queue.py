from __future__ import annotations

from typing import Optional

from redis.exceptions import RedisError
from rq import Queue

from .db import get_redis

QUEUE_NAME = "availability"

_queue: Optional[Queue] = None


def get_queue() -> Optional[Queue]:
    global _queue
    if _queue is not None:
        return _queue
    conn = get_redis()
    if conn is None:
        return None
    try:
        conn.ping()
    except RedisError:
        return None
    _queue = Queue(QUEUE_NAME, connection=conn)
    return _queue
