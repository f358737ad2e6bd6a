"""
评分接口限流
先按客户端指纹计数，指纹额度用尽后再看客户端IP的额度；
两级额度都是滑动窗口，计数保存在进程内存中
"""

from typing import Optional, Union

from limits import RateLimitItem, parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter

from ..config.settings import settings

FINGERPRINT_PREFIX = "FP"
IP_PREFIX = "IP"


def _as_limit(value: Union[str, RateLimitItem]) -> RateLimitItem:
    """接受 "10 per 30 seconds" 形式的字符串或现成的 RateLimitItem"""
    return value if isinstance(value, RateLimitItem) else parse(value)


class RateLimiter:
    """指纹优先、IP兜底的两级限流器"""

    def __init__(
        self,
        fingerprint_limit: Union[str, RateLimitItem, None] = None,
        ip_limit: Union[str, RateLimitItem, None] = None,
        storage: Optional[Storage] = None,
    ):
        self.fingerprint_limit = _as_limit(fingerprint_limit or settings.rate_limit_fingerprint)
        self.ip_limit = _as_limit(ip_limit or settings.rate_limit_ip)
        self.storage = storage or MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self.storage)

    def allow(self, fingerprint: str, client_ip: str) -> bool:
        """
        判断一次请求是否放行，放行时计入对应的额度

        Args:
            fingerprint: 客户端指纹（可能为空字符串）
            client_ip: 客户端IP（无法确定时为空字符串）

        Returns:
            bool: 指纹额度或IP额度任一未用尽即放行
        """
        if self._limiter.hit(self.fingerprint_limit, FINGERPRINT_PREFIX, fingerprint):
            return True
        return self._limiter.hit(self.ip_limit, IP_PREFIX, client_ip)

    def reset(self):
        self.storage.reset()


# 全局限流器实例
rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    """FastAPI 依赖：返回全局限流器"""
    return rate_limiter
