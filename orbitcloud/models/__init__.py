from orbitcloud.models.user import User
from orbitcloud.models.product import Product
from orbitcloud.models.transaction import (
    OrderStatus, PanelAccount, ServerDetail, Transaction,
)

__all__ = ["User", "Product", "OrderStatus", "PanelAccount", "ServerDetail", "Transaction"]
