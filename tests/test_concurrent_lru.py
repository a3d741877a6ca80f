import threading

import pytest

from mosdns.concurrent_lru import ConcurrentLRU, ShardedLRU


def new_cache(shard_num=4, max_shard_size=16):
    return ShardedLRU(shard_num, max_shard_size, lambda k, v: None)


def fill(cache, *keys):
    for k in keys:
        cache.add(k, k)


def assert_get(cache, *keys):
    for k in keys:
        assert cache.get(k) == k


def assert_missing(cache, *keys):
    for k in keys:
        assert k not in cache
        assert cache.get(k, "missing") == "missing"


def test_add():
    cache = new_cache()
    fill(cache, 1, 1, 1, 1, 2, 2, 3, 3, 4)
    assert len(cache) == 4
    assert_get(cache, 1, 2, 3, 4)
    assert_missing(cache, 5, 6, 7, 9999)


def test_add_overflow():
    cache = new_cache()
    for i in range(1024):
        cache.add(i, i)
    assert len(cache) <= 64


def test_delete():
    cache = new_cache()
    fill(cache, 1, 2, 3, 4)
    cache.delete(2)
    cache.delete(4)
    cache.delete(9999)
    assert_get(cache, 1, 3)
    assert_missing(cache, 2, 4)


def test_clean():
    cache = new_cache()
    fill(cache, 1, 2, 3, 4)
    assert cache.clean(lambda k, v: k in (1, 3)) == 2
    assert_get(cache, 2, 4)
    assert_missing(cache, 1, 3)


def test_flush():
    cache = new_cache()
    fill(cache, 1, 2, 3)
    cache.flush()
    assert len(cache) == 0


def test_concurrent_lru_basic():
    evicted = []
    lru = ConcurrentLRU(2, lambda k, v: evicted.append(k))
    fill(lru, 1, 2, 3)
    assert len(lru) == 2
    assert evicted == [1]
    assert 1 not in lru
    assert lru.get(3) == 3
    lru.delete(2)
    assert evicted == [1, 2]
    assert lru.clean(lambda k, v: True) == 1
    assert len(lru) == 0


def test_concurrent_access():
    cache = new_cache(8, 1024)

    def worker(offset):
        for i in range(200):
            cache.add(offset * 1000 + i, i)
            cache.get(offset * 1000 + i)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(cache) == 1600


def test_invalid_shard_num():
    with pytest.raises(ValueError):
        ShardedLRU(0, 16)