from fastapi import APIRouter, Depends

from orbitcloud.api.deps import get_catalog
from orbitcloud.api.responses import ok
from orbitcloud.repositories.product_repo import Catalog

router = APIRouter(tags=["products"])


@router.get("/products")
async def list_products(catalog: Catalog = Depends(get_catalog)):
    return ok(catalog.as_dict())
