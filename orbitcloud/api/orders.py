from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from orbitcloud.api.deps import get_orders
from orbitcloud.api.responses import ok
from orbitcloud.services.orders import OrderService

router = APIRouter(tags=["orders"])


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId")
    product_id: str = Field(alias="productId")
    username_req: str = Field(alias="usernameReq")


@router.post("/order")
async def create_order(payload: OrderCreate, orders: OrderService = Depends(get_orders)):
    trx = await orders.create_order(payload.user_id, payload.product_id, payload.username_req)
    return ok(trx.model_dump(mode="json"))


@router.post("/order/{order_id}/cancel")
async def cancel_order(order_id: str, orders: OrderService = Depends(get_orders)):
    trx = await orders.cancel_order(order_id)
    return ok(trx.model_dump(mode="json"), message="Order cancelled")


@router.post("/order/{order_id}/simulate")
async def simulate_payment(order_id: str, orders: OrderService = Depends(get_orders)):
    ack = await orders.simulate_payment(order_id)
    return ok(message=ack["message"])


@router.get("/order/{order_id}/status")
async def order_status(order_id: str, orders: OrderService = Depends(get_orders)):
    # polled by the payment page; also drives deployment retries
    trx = await orders.check_status(order_id)
    return ok(trx.model_dump(mode="json"))


@router.get("/history/{user_id}")
async def history(user_id: str, orders: OrderService = Depends(get_orders)):
    return ok([t.model_dump(mode="json") for t in await orders.history(user_id)])
