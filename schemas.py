"""
Database Schemas for the Shop Service

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: customers
- order: purchases, each referencing a user by _id (checked on write, never cascaded)

The *Update models carry the same fields, all optional, for partial updates.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class User(BaseModel):
    name: str
    email: str
    age: int


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product: str
    price: float
    user_id: Optional[str] = Field(None, alias="userId", description="Reference to user _id")


class OrderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product: Optional[str] = None
    price: Optional[float] = None
    user_id: Optional[str] = Field(None, alias="userId")
