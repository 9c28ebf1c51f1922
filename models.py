import uuid
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from errors import ApiError, Err, Ok, Result


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str
    price: Union[int, float]
    category: str
    in_stock: bool = Field(alias="inStock")


# Données de démarrage
SEED_PRODUCTS: List[dict] = [
    {
        "id": "1",
        "name": "Laptop",
        "description": "High-performance laptop with 16GB RAM",
        "price": 11200,
        "category": "electronics",
        "inStock": True,
    },
    {
        "id": "2",
        "name": "Smartphone",
        "description": "Latest model with 256GB storage",
        "price": 1800,
        "category": "electronics",
        "inStock": True,
    },
    {
        "id": "3",
        "name": "Coffee Maker",
        "description": "Programmable coffee maker with timer",
        "price": 100,
        "category": "kitchen",
        "inStock": False,
    },
]


class ProductStore:
    """
    Ordered in-memory collection of products.

    Insertion order is kept; replace() keeps a record at its position and
    remove() keeps the order of the others. Lookups that can miss return
    ``Err(ApiError.not_found())`` instead of raising.
    """

    def __init__(self, products: Optional[List[Product]] = None):
        self._products: List[Product] = list(products or [])

    @classmethod
    def seeded(cls) -> "ProductStore":
        return cls([Product.model_validate(p) for p in SEED_PRODUCTS])

    def __len__(self) -> int:
        return len(self._products)

    def list(self) -> List[Product]:
        return list(self._products)

    def _index_of(self, product_id: str) -> int:
        return next((i for i, p in enumerate(self._products) if p.id == product_id), -1)

    def find_by_id(self, product_id: str) -> Result:
        index = self._index_of(product_id)
        if index == -1:
            return Err(ApiError.not_found())
        return Ok(self._products[index])

    def insert(self, fields: BaseModel) -> Product:
        product = Product(id=str(uuid.uuid4()), **fields.model_dump())
        self._products.append(product)
        return product

    def replace(self, product_id: str, fields: BaseModel) -> Result:
        index = self._index_of(product_id)
        if index == -1:
            return Err(ApiError.not_found())
        self._products[index] = Product(id=product_id, **fields.model_dump())
        return Ok(self._products[index])

    def remove(self, product_id: str) -> Result:
        index = self._index_of(product_id)
        if index == -1:
            return Err(ApiError.not_found())
        return Ok(self._products.pop(index))
