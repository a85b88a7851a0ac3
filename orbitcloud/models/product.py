from typing import Literal

from pydantic import BaseModel

Category = Literal["linux", "windows", "nodejs"]


class Product(BaseModel):
    id: str
    name: str
    price: int      # IDR
    ram: int        # MB
    disk: int       # MB
    cpu: int        # percent of one core
    extra: str = ""
    category: Category
