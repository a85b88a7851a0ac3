from fastapi import Request

from orbitcloud.db.store import JsonStore
from orbitcloud.repositories.product_repo import Catalog
from orbitcloud.services.orders import OrderService


def get_orders(request: Request) -> OrderService:
    return request.app.state.orders


def get_store(request: Request) -> JsonStore:
    return request.app.state.store


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog
