from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List


# Upper bound of a NUMERIC(10, 2) column
MAX_PRICE = 99_999_999.99
# Upper bound of an INTEGER column
MAX_INT = 2_147_483_647


class Product(BaseModel):
    """
    Core product fields.
    """

    name: str = Field(..., min_length=1)  # Product display name
    price: float = Field(..., ge=0, le=MAX_PRICE)  # Unit price, two fraction digits
    amount: int = Field(..., ge=0, le=MAX_INT)  # Units in stock
    description: Optional[str] = None  # Detailed product description

    # Clients may echo back the id of a record they fetched; it is never taken from the body
    model_config = ConfigDict(extra="ignore")

    @field_validator("price")
    @classmethod
    def round_price(cls, value: float) -> float:
        return round(value, 2)


class ProductCreate(Product):
    """
    Fields a client needs to provide to create a product.
    """

    pass


class ProductUpdate(Product):
    """
    Fields a client provides to update a product.
    An update replaces every mutable field, so all of them are required.
    """

    pass


class ProductResponse(Product):
    """
    All product fields plus the server-assigned id.
    This is what clients receive when requesting product details.
    """

    id: int

    model_config = ConfigDict(extra="ignore", from_attributes=True)


class ProductList(BaseModel):
    """
    Response model for the product listing endpoint.

    Contains one page of products, ordered by id, with the numbers
    a client needs to page through the rest.
    """

    data: List[ProductResponse]
    total_pages: int
    current_page: int

    model_config = ConfigDict(extra="forbid")


class MessageResponse(BaseModel):
    message: str
