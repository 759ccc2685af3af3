import time
import uuid
from redis import Redis

# Deletes the key only if it still holds our token.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

class RedisLock:
    def __init__(self, redis_client: Redis, lock_key: str, expire_seconds: int = 30, timeout: float = 10):
        """
        Initialize a Redis-based distributed lock
        :param redis_client: Redis client instance
        :param lock_key: Unique key for the lock
        :param expire_seconds: Lock expiry time in seconds (default: 30)
        :param timeout: How long the context manager waits for the lock
        """
        self.redis = redis_client
        self.lock_key = f"lock:{lock_key}"
        self.expire_seconds = expire_seconds
        self.timeout = timeout
        self._token = None

    def acquire(self, timeout: float = 10, retry_delay: float = 0.5) -> bool:
        """
        Acquire the lock with timeout
        :param timeout: Maximum time to wait for lock in seconds
        :param retry_delay: Time to wait between retries in seconds
        :return: True if lock acquired, False otherwise
        """
        token = uuid.uuid4().hex
        end_time = time.time() + timeout

        while time.time() < end_time:
            success = self.redis.set(
                self.lock_key,
                token,
                ex=self.expire_seconds,
                nx=True  # Only set if key doesn't exist
            )

            if success:
                self._token = token
                return True

            time.sleep(retry_delay)

        return False

    def release(self) -> bool:
        """
        Release the lock if owned
        :return: True if lock was released, False if not owned
        """
        if not self._token:
            return False

        released = self.redis.eval(_RELEASE_SCRIPT, 1, self.lock_key, self._token)
        self._token = None
        return bool(released)

    def __enter__(self):
        success = self.acquire(timeout=self.timeout)
        if not success:
            raise TimeoutError(f"Could not acquire lock for {self.lock_key}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
