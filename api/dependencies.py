"""
API依赖项 - 应用级单例与各用例服务的装配

进程级状态（tracker、webhook 历史、按 charge 的锁、退款台账）由 lifespan
创建并挂在 ``app.state`` 上；外部网关按请求构建并在请求结束后关闭。
测试通过 ``app.dependency_overrides`` 替换这些 provider。
"""
from collections import deque
from typing import AsyncIterator, Callable

from fastapi import Depends, Request

from application.ports.chain import TokenTransferGateway
from application.ports.commerce import CommerceGateway
from application.ports.payment_tracker import PaymentTracker
from application.services.charge_listing_service import ChargeListingService
from application.services.payment_status_service import PaymentStatusService
from application.services.refund_service import RefundLedger, RefundService
from application.services.webhook_service import WebhookService
from application.utils.backoff import BackoffPolicy
from application.utils.keyed_lock import KeyedLock
from core.settings import payment_settings
from infrastructure.external.chain import build_token_client, is_address
from infrastructure.external.commerce import get_commerce_client


def get_payment_tracker(request: Request) -> PaymentTracker:
    return request.app.state.payment_tracker


def get_webhook_history(request: Request) -> deque:
    return request.app.state.webhook_history


def get_refund_locks(request: Request) -> KeyedLock:
    return request.app.state.refund_locks


def get_refund_ledger(request: Request) -> RefundLedger:
    return request.app.state.refund_ledger


async def get_commerce_gateway() -> AsyncIterator[CommerceGateway]:
    """Per-request provider client; the API key is checked when a request goes out."""
    client = get_commerce_client(payment_settings)
    try:
        yield client
    finally:
        await client.aclose()


def get_chain_factory() -> Callable[[], TokenTransferGateway]:
    # Built lazily inside the refund flow so config errors surface before any network call
    return lambda: build_token_client(payment_settings)


def get_address_validator() -> Callable[[str], bool]:
    return is_address


async def get_webhook_service(
    gateway: CommerceGateway = Depends(get_commerce_gateway),
    tracker: PaymentTracker = Depends(get_payment_tracker),
    history: deque = Depends(get_webhook_history),
) -> WebhookService:
    return WebhookService(gateway=gateway, tracker=tracker, history=history)


async def get_payment_status_service(
    tracker: PaymentTracker = Depends(get_payment_tracker),
) -> PaymentStatusService:
    return PaymentStatusService(tracker=tracker)


async def get_charge_listing_service(
    gateway: CommerceGateway = Depends(get_commerce_gateway),
) -> ChargeListingService:
    return ChargeListingService(
        gateway,
        BackoffPolicy.from_settings(payment_settings.retry),
        max_pages=payment_settings.listing.max_pages,
    )


async def get_refund_service(
    gateway: CommerceGateway = Depends(get_commerce_gateway),
    chain_factory: Callable[[], TokenTransferGateway] = Depends(get_chain_factory),
    address_validator: Callable[[str], bool] = Depends(get_address_validator),
    locks: KeyedLock = Depends(get_refund_locks),
    ledger: RefundLedger = Depends(get_refund_ledger),
) -> RefundService:
    return RefundService(
        gateway,
        chain_factory,
        is_address=address_validator,
        locks=locks,
        ledger=ledger,
        recipient_source=payment_settings.refund.recipient_source,
        require_customer_request=payment_settings.refund.require_customer_request,
    )
