"""
Order lifecycle: pending -> paid -> deployed, with expiry and cancellation.

State only moves when a caller asks for it. There is no background sweeper:
a pending order past its TTL stays ``pending`` on disk until the next status
check expires it, so anything reading the store directly must apply
``is_stale`` itself.

Payment confirmation is discovered by client polling of ``check_status``; a
settled order that failed to deploy is retried on every following poll.

Store reads and rewrites are blocking file I/O and run in a worker thread.
"""
import asyncio
import logging
import math
import re
import secrets
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

from anyio import to_thread

from orbitcloud.core.errors import (
    Conflict, Forbidden, InvalidInput, InvalidState, NotFound, RateLimited, Unauthorized,
)
from orbitcloud.db.store import JsonStore
from orbitcloud.models.transaction import OrderStatus, ServerDetail, Transaction
from orbitcloud.models.user import User
from orbitcloud.repositories import transaction_repo, user_repo
from orbitcloud.repositories.product_repo import Catalog
from orbitcloud.services.pakasir import PakasirClient
from orbitcloud.services.pterodactyl import PterodactylClient

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"[A-Za-z0-9_]{3,16}")
GATEWAY_EXPIRED = "expired"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_username(username) -> str:
    if not isinstance(username, str) or not USERNAME_PATTERN.fullmatch(username):
        raise InvalidInput("Username may only contain letters, digits and underscores, 3-16 characters.")
    return username


def generate_order_id(now: datetime) -> str:
    return f"INV-{int(now.timestamp() * 1000)}-{secrets.token_hex(3).upper()}"


class KeyedLocks:
    """
    One asyncio.Lock per key, kept only while someone holds or waits on it.
    """

    def __init__(self):
        self._entries: dict[str, list] = {}  # key -> [lock, holders + waiters]

    def __len__(self) -> int:
        return len(self._entries)

    @asynccontextmanager
    async def hold(self, key: str):
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]


class OrderService:
    def __init__(
        self,
        store: JsonStore,
        catalog: Catalog,
        gateway: PakasirClient,
        panel: PterodactylClient,
        *,
        sandbox: bool = False,
        settled_statuses=("completed", "success", "settlement"),
        order_ttl: int = 1800,
        cancel_min_wait: int = 120,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.catalog = catalog
        self.gateway = gateway
        self.panel = panel
        self.sandbox = sandbox
        self.settled_statuses = {s.lower() for s in settled_statuses}
        self.order_ttl = order_ttl
        self.cancel_min_wait = cancel_min_wait
        self.clock = clock
        self._order_locks = KeyedLocks()
        self._user_locks = KeyedLocks()

    # --- helpers ---

    async def _get(self, order_id: str) -> Transaction:
        trx = await to_thread.run_sync(transaction_repo.get, self.store, order_id)
        if trx is None:
            raise NotFound("Transaction not found")
        return trx

    async def _save(self, trx: Transaction) -> Transaction:
        return await to_thread.run_sync(transaction_repo.save, self.store, trx)

    async def _get_user(self, user_id: str) -> User | None:
        return await to_thread.run_sync(user_repo.get_by_id, self.store, user_id)

    def is_stale(self, trx: Transaction, now: datetime | None = None) -> bool:
        """Pending and older than the TTL, whether or not that has been persisted yet."""
        now = now or self.clock()
        return trx.status is OrderStatus.pending and trx.age_seconds(now) > self.order_ttl

    async def active_order(self, user: User) -> Transaction | None:
        orders = await to_thread.run_sync(transaction_repo.list_by_email, self.store, user.email)
        now = self.clock()
        for trx in orders:
            if trx.status is OrderStatus.pending and trx.age_seconds(now) < self.order_ttl:
                return trx
        return None

    async def _expire(self, trx: Transaction) -> Transaction:
        trx.status = OrderStatus.expired
        await self._save(trx)
        logger.info("order %s expired", trx.order_id)
        return trx

    # --- operations ---

    async def create_order(self, user_id: str, product_id: str, requested_username: str) -> Transaction:
        user = await self._get_user(user_id)
        if user is None:
            raise Unauthorized("Invalid user")
        validate_username(requested_username)
        product = self.catalog.get_by_id(product_id)
        if product is None:
            raise NotFound("Product not found")

        async with self._user_locks.hold(user.id):
            existing = await self.active_order(user)
            if existing is not None:
                raise Conflict(
                    "Complete your previous invoice before placing a new order!",
                    data=existing.model_dump(mode="json"),
                )

            now = self.clock()
            order_id = generate_order_id(now)
            # raises UpstreamError; nothing is persisted in that case
            payment = await self.gateway.create_payment_request(order_id, product.price)

            trx = Transaction(
                order_id=order_id,
                user_id=user.id,
                user_email=user.email,
                amount=payment.settled_amount,
                original_price=product.price,
                payment_reference=payment.payment_reference,
                payment_expires_at=payment.expired_at,
                product_id=product.id,
                product_name=product.name,
                requested_username=requested_username,
                status=OrderStatus.pending,
                created_at=now,
            )
            await self._save(trx)
        logger.info("order %s created for %s (%s, %s IDR)", order_id, user.email, product.id, trx.amount)
        return trx

    async def cancel_order(self, order_id: str) -> Transaction:
        # unknown ids are rejected before any lock is taken
        await self._get(order_id)

        async with self._order_locks.hold(order_id):
            trx = await self._get(order_id)
            if trx.status is not OrderStatus.pending:
                raise InvalidState("This order can no longer be cancelled")

            age = trx.age_seconds(self.clock())
            if age < self.cancel_min_wait:
                wait_left = math.ceil(self.cancel_min_wait - age)
                raise RateLimited(
                    f"Spam protection active. Please wait {wait_left} more seconds before cancelling.",
                    wait_seconds=wait_left,
                )

            trx.status = OrderStatus.cancelled
            await self._save(trx)
        logger.info("order %s cancelled", order_id)
        return trx

    async def simulate_payment(self, order_id: str) -> dict:
        if not self.sandbox:
            raise Forbidden("This feature is only available in sandbox/test mode.")
        trx = await self._get(order_id)
        await self.gateway.simulate(order_id, trx.amount)
        logger.info("payment simulation sent for %s", order_id)
        return {"order_id": order_id, "message": "Payment simulation sent. Waiting for the system to process it."}

    async def check_status(self, order_id: str) -> Transaction:
        trx = await self._get(order_id)

        token = None
        if trx.status is OrderStatus.pending and not self.is_stale(trx):
            # outside the lock: concurrent polls may both ask the gateway, nothing worse
            token = await self.gateway.check_settlement(order_id, trx.original_price)

        async with self._order_locks.hold(order_id):
            # another poll may have moved the order while we were waiting
            trx = await self._get(order_id)

            if self.is_stale(trx):
                return await self._expire(trx)

            if trx.status is OrderStatus.paid:
                if not trx.server_provisioned:
                    await self.deploy(trx)
                return trx

            if trx.is_terminal or token is None:
                return trx

            if token in self.settled_statuses:
                trx.status = OrderStatus.paid
                await self._save(trx)
                logger.info("order %s paid (gateway status %s)", order_id, token)
                await self.deploy(trx)
            elif token == GATEWAY_EXPIRED:
                await self._expire(trx)
            return trx

    async def deploy(self, trx: Transaction) -> Transaction:
        """
        Create the panel account and server for a paid order, in place.

        Never raises: a failed attempt leaves the order paid and unprovisioned so
        the next status poll retries it. The panel account is persisted as soon
        as it exists, so retries go straight to server creation.
        """
        if trx.server_provisioned or trx.status is not OrderStatus.paid:
            return trx

        try:
            product = self.catalog.get_by_id(trx.product_id)
            if product is None:
                logger.error("deploy %s: product %s no longer in catalog", trx.order_id, trx.product_id)
                return trx

            account = trx.panel_account
            if account is None:
                account = await self.panel.create_account(trx.requested_username, trx.user_email)
                if account is None:
                    logger.warning("deploy %s: panel account not created, will retry", trx.order_id)
                    return trx
                trx.panel_account = account
                await self._save(trx)

            instance = await self.panel.create_instance(account.id, product, trx.requested_username)

            detail = ServerDetail(
                uuid=instance.uuid,
                identifier=instance.identifier,
                panel_url=self.panel.panel_url,
                username=account.username,
                password=account.password,
                ip=instance.ip,
                port=instance.port,
            )
            await self._save(trx.model_copy(update={"server_provisioned": True, "server_detail": detail}))
            trx.server_provisioned = True
            trx.server_detail = detail
            logger.info("order %s deployed: server %s at %s:%s", trx.order_id, instance.identifier, instance.ip, instance.port)
        except Exception:
            logger.exception("deploy failed for %s", trx.order_id)
        return trx

    async def history(self, user_id: str) -> list[Transaction]:
        user = await self._get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        orders = await to_thread.run_sync(transaction_repo.list_by_email, self.store, user.email)
        now = self.clock()
        result = []
        for trx in orders:
            if self.is_stale(trx, now):
                trx = trx.model_copy(update={"status": OrderStatus.expired})
            result.append(trx)
        return result
