import pytest

from cloudpipe.utils.redis_lock import RedisLock

LAUNCH_LOCK = 'spotguide-launch:acme/proj1'


def test_lock_is_exclusive_until_released(redis):
    first = RedisLock(redis, LAUNCH_LOCK, expire_seconds=30)
    second = RedisLock(redis, LAUNCH_LOCK, expire_seconds=30)

    assert first.acquire(timeout=1)
    assert not second.acquire(timeout=0.05, retry_delay=0.01)
    assert 0 < redis.ttl(f'lock:{LAUNCH_LOCK}') <= 30

    assert first.release()
    assert redis.get(f'lock:{LAUNCH_LOCK}') is None
    assert second.acquire(timeout=1)


def test_locks_on_other_destinations_do_not_block(redis):
    assert RedisLock(redis, LAUNCH_LOCK).acquire(timeout=1)
    assert RedisLock(redis, 'spotguide-launch:acme/proj2').acquire(timeout=1)


def test_release_leaves_a_lock_taken_over_by_someone_else(redis):
    """After expiry another holder may own the key; releasing must not delete it"""
    lock = RedisLock(redis, LAUNCH_LOCK, expire_seconds=30)
    assert lock.acquire(timeout=1)

    redis.set(f'lock:{LAUNCH_LOCK}', 'other-token')

    assert not lock.release()
    assert redis.get(f'lock:{LAUNCH_LOCK}') == b'other-token'


def test_release_without_acquire(redis):
    assert not RedisLock(redis, LAUNCH_LOCK).release()


def test_context_manager_times_out_on_held_lock(redis):
    holder = RedisLock(redis, LAUNCH_LOCK)
    assert holder.acquire(timeout=1)

    with pytest.raises(TimeoutError):
        with RedisLock(redis, LAUNCH_LOCK, timeout=0.05):
            pass

    # the holder still owns the lock
    assert holder.release()


def test_context_manager_releases_on_exit(redis):
    with RedisLock(redis, LAUNCH_LOCK):
        assert redis.get(f'lock:{LAUNCH_LOCK}') is not None

    assert redis.get(f'lock:{LAUNCH_LOCK}') is None
