"""
Pending-payment tracker backends.
"""
from application.ports.payment_tracker import PaymentTracker
from core.config import Settings
from core.logging_config import get_logger
from .inmemory import InMemoryPaymentTracker
from .redis import RedisPaymentTracker


logger = get_logger(__name__)


def build_payment_tracker(settings: Settings) -> PaymentTracker:
    backend = settings.tracker_backend
    if backend == "redis":
        if not settings.redis.url:
            raise ValueError("TRACKER__BACKEND=redis requires REDIS__URL")
        logger.info("payment_tracker_backend", backend="redis", key=settings.tracker.key)
        return RedisPaymentTracker.from_url(
            settings.redis.url,
            key=settings.tracker.key,
            namespace=settings.redis.namespace,
        )
    logger.info("payment_tracker_backend", backend="memory")
    return InMemoryPaymentTracker()


__all__ = ["InMemoryPaymentTracker", "RedisPaymentTracker", "build_payment_tracker"]
