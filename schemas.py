"""
Database Schemas for the Storefront

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name.
Request bodies live below the collection schemas.
"""
from typing import Annotated, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, EmailStr, Field, StringConstraints

ROLES = ("customer", "admin")
Role = Literal["customer", "admin"]

NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
# strict keeps booleans out, allow_inf_nan keeps the value JSON-renderable
Price = Annotated[float, Field(gt=0, allow_inf_nan=False, strict=True)]


class User(BaseModel):
    name: NonBlankStr = Field(..., description="Full name")
    email: EmailStr
    password_hash: str = Field(..., description="Salted password hash")
    role: Role = "customer"


class Product(BaseModel):
    name: NonBlankStr
    price: Price
    image: Optional[str] = None
    description: Optional[str] = None


class ProductSnapshot(BaseModel):
    id: str = Field(..., validation_alias=AliasChoices("id", "_id"))
    name: NonBlankStr
    price: Price
    description: Optional[str] = None


class OrderItem(BaseModel):
    product: ProductSnapshot
    quantity: int = Field(..., ge=1)


class Order(BaseModel):
    customerId: str
    items: List[OrderItem]


# ----------------------- Request bodies -----------------------
class RegisterBody(BaseModel):
    name: NonBlankStr
    email: EmailStr
    password: str = Field(..., min_length=10)


class RoleUpdateBody(BaseModel):
    role: Optional[str] = None


class ProductCreateBody(Product):
    pass


class ProductUpdateBody(BaseModel):
    name: Optional[NonBlankStr] = None
    price: Optional[Price] = None
    image: Optional[str] = None
    description: Optional[str] = None


class OrderCreateBody(BaseModel):
    items: List[OrderItem] = Field(..., min_length=1)
