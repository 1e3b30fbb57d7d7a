import redis
from redis.exceptions import RedisError

from fulfillment.domain.errors import RateLimitedError
from fulfillment.utils.retry import redis_retry
from fulfillment.utils.settings import REDIS_URL, RATE_LIMIT_WINDOW_SECONDS
from fulfillment.utils.logging import get_logger

logger = get_logger(__name__)

#LUA incr + expire przy pierwszym trafieniu, atomowo
_HIT_LUA = """
local current = redis.call('INCR', KEYS[1])
if current == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return current
"""

#redis wykonuje skrypt jako jedna nieprzerywalna operacje
#nie da sie wcisnac miedzy INCR a EXPIRE, wiec klucz zawsze wygasa


class RateLimitService:
    """
    -limit zapytan w stalym oknie (per akcja, per uzytkownik)
    -gdy redis nie odpowiada przepuszczamy (fail open) i logujemy
    """

    def __init__(self, url: str | None = None, window_seconds: int = RATE_LIMIT_WINDOW_SECONDS):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.window_seconds = window_seconds

    @redis_retry()
    def _hit(self, key: str) -> int:
        return int(self.redis.eval(_HIT_LUA, 1, key, self.window_seconds))

    def check(self, action: str, user_id: int, limit: int) -> None:
        key = f"ratelimit:{action}:{user_id}"
        try:
            count = self._hit(key)
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable for {key}, allowing request: {e}")
            return

        if count > limit:
            logger.warning(f"Rate limit exceeded for {key} ({count}/{limit})")
            raise RateLimitedError("Too many requests, please try again later")
