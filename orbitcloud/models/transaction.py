from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    cancelled = "cancelled"
    expired = "expired"


TERMINAL_STATUSES = {OrderStatus.cancelled, OrderStatus.expired}


class PanelAccount(BaseModel):
    """Panel user created for an order; kept so a retried deploy does not recreate it."""
    id: int
    username: str
    password: str


class ServerDetail(BaseModel):
    uuid: str | None = None
    identifier: str | None = None
    panel_url: str
    username: str
    password: str
    ip: str
    port: int


class Transaction(BaseModel):
    order_id: str
    user_id: str
    user_email: str

    # amount billed by the gateway (may carry a uniqueness suffix)
    amount: int
    # catalog price; gateway lookups are keyed by order_id + this value
    original_price: int
    payment_reference: str
    payment_expires_at: str | None = None

    # product snapshot at order time
    product_id: str
    product_name: str
    requested_username: str

    status: OrderStatus = OrderStatus.pending
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    server_provisioned: bool = False
    panel_account: PanelAccount | None = None
    server_detail: ServerDetail | None = None

    def age_seconds(self, now: datetime) -> float:
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return (now - created).total_seconds()

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
