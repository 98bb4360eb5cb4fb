import math
import time

from fastapi import HTTPException, Request, status


async def check_rate_limit(
    request: Request,
    key: str,
    limit: int,
    window_seconds: int = 60,
) -> None:
    """Sliding window rate limiter using Redis sorted sets.

    Searches are logged on every keystroke-driven lookup, so both the
    suggestion reads and the search writes share this window.
    """
    redis = request.app.state.redis
    now = time.time()
    window_start = now - window_seconds
    bucket = f"ratelimit:{key}"

    pipe = redis.pipeline()
    pipe.zremrangebyscore(bucket, 0, window_start)
    pipe.zcard(bucket)
    pipe.zadd(bucket, {f"{now}:{id(request)}": now})
    pipe.expire(bucket, window_seconds)
    pipe.zrange(bucket, 0, 0, withscores=True)
    results = await pipe.execute()

    request_count = results[1]
    if request_count < limit:
        return

    oldest = results[4]
    retry_after = window_seconds
    if oldest:
        retry_after = max(1, math.ceil(oldest[0][1] + window_seconds - now))

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail={
            "error": "Rate limit exceeded",
            "limit": limit,
            "window_seconds": window_seconds,
            "retry_after_seconds": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
