"""
店铺评分服务
限流 -> 校验客户端令牌 -> 写入评分，顺序不可调换
"""

from typing import Optional

from .canteen_service import build_store_listing
from .catalog_repository import CatalogRepository
from ..core.database import DatabaseManager, db_manager
from ..core.exceptions import RateLimitExceededError
from ..core.ratelimit import RateLimiter, rate_limiter
from ..core.security import SecurityManager, security_manager
from ..schemas.canteen import StoreListing


class RatingService:
    """店铺评分服务"""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        limiter: Optional[RateLimiter] = None,
        security: Optional[SecurityManager] = None,
    ):
        self.db = db or db_manager
        self.limiter = limiter or rate_limiter
        self.security = security or security_manager
        self.repository = CatalogRepository(self.db)

    def issue_client_token(self, fingerprint: str) -> str:
        """为浏览器指纹签发客户端令牌"""
        return self.security.create_client_token(fingerprint)

    def rate_store(self, store_id: str, rating: float, client_token: Optional[str],
                   client_ip: str) -> StoreListing:
        """
        给店铺评分，同一客户端重复评分时覆盖旧值

        Raises:
            RateLimitExceededError: 请求过于频繁
            InvalidClientTokenError: 客户端令牌无效
            StoreNotFoundError: 店铺不存在
        """
        if not self.limiter.allow(self.security.peek_fingerprint(client_token), client_ip):
            raise RateLimitExceededError()

        fingerprint = self.security.verify_client_token(client_token)
        store = self.repository.upsert_rating(store_id, fingerprint, rating)
        ratings = self.repository.get_ratings([store.id]).get(store.id, {})
        return build_store_listing(store, ratings, fingerprint)
