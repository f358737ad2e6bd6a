"""
限流器测试
"""

import threading

from limits import parse

from ..core.ratelimit import RateLimiter


class TestRateLimiter:
    """滑动窗口限流测试"""

    def test_burst_then_denied(self, rate_limiter):
        """指纹额度 10 次，用尽后还有 IP 额度 2 次"""
        results = [rate_limiter.allow("fp-1", "10.0.0.1") for _ in range(13)]
        assert results == [True] * 12 + [False]

    def test_window_still_closed_at_boundary(self, rate_limiter, clock):
        for _ in range(12):
            rate_limiter.allow("fp-1", "10.0.0.1")
        clock.advance(30)
        assert not rate_limiter.allow("fp-1", "10.0.0.1")

    def test_window_reopens(self, rate_limiter, clock):
        for _ in range(13):
            rate_limiter.allow("fp-1", "10.0.0.1")
        clock.advance(31)
        assert [rate_limiter.allow("fp-1", "10.0.0.1") for _ in range(13)] == [True] * 12 + [False]

    def test_sliding_window(self, rate_limiter, clock):
        """只有超出窗口的旧请求让出额度"""
        for _ in range(5):
            assert rate_limiter.allow("fp-1", "10.0.0.1")
        clock.advance(10)
        for _ in range(5):
            assert rate_limiter.allow("fp-1", "10.0.0.1")
        clock.advance(21)
        results = [rate_limiter.allow("fp-1", "10.0.0.1") for _ in range(8)]
        assert results == [True] * 7 + [False]

    def test_keys_are_independent(self, rate_limiter):
        for _ in range(13):
            rate_limiter.allow("fp-1", "10.0.0.1")
        assert rate_limiter.allow("fp-2", "10.0.0.1")
        assert rate_limiter.allow("fp-1", "10.0.0.2")

    def test_ip_quota_shared_across_fingerprints(self, rate_limiter):
        """指纹用尽后落到IP额度，同一IP下的其他耗尽指纹共享该额度"""
        for fingerprint in ("a", "b"):
            for _ in range(10):
                assert rate_limiter.allow(fingerprint, "10.0.0.1")
        assert [rate_limiter.allow("a", "10.0.0.1") for _ in range(3)] == [True, True, False]
        assert not rate_limiter.allow("b", "10.0.0.1")

    def test_limits_from_items(self, clock):
        limiter = RateLimiter(parse("1 per second"), parse("1 per second"))
        assert [limiter.allow("fp-1", "10.0.0.1") for _ in range(3)] == [True, True, False]
        clock.advance(2)
        assert limiter.allow("fp-1", "10.0.0.1")

    def test_reset(self, rate_limiter):
        for _ in range(13):
            rate_limiter.allow("fp-1", "10.0.0.1")
        rate_limiter.reset()
        assert rate_limiter.allow("fp-1", "10.0.0.1")

    def test_thread_safe(self, rate_limiter):
        allowed = []

        def worker():
            for _ in range(5):
                allowed.append(rate_limiter.allow("fp-1", "10.0.0.1"))

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert allowed.count(True) == 12
