from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, confloat

from errors import ApiError, Err, Ok, Result

INVALID_PRODUCT_DATA = "Invalid product data"


class ProductCreate(BaseModel):
    # strict: pas de coercition ("12" n'est pas un prix, 1 n'est pas un booléen)
    model_config = ConfigDict(strict=True)

    name: str
    description: str
    price: Union[int, confloat(allow_inf_nan=False)]
    category: str
    in_stock: bool = Field(alias="inStock")


def validate_product(payload: Any) -> Result:
    """Check the shape of a create/update payload (full field set required)."""
    try:
        return Ok(ProductCreate.model_validate(payload))
    except ValidationError:
        return Err(ApiError.validation(INVALID_PRODUCT_DATA))
