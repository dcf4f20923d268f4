"""
Database Schemas for the Tasty Bites ordering service

Each Pydantic model below corresponds to a MongoDB collection, except the
request-only models at the bottom. Documents are schema-flexible: models
allow extra fields and only pin down what the handlers rely on.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class Owner(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr = Field(..., description="Owner email address")
    name: Optional[str] = None


class Food(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, description="Food name")
    image: str = Field(..., description="Image URL")
    price: Optional[float] = Field(None, description="Unit price")
    quantity: Optional[float] = Field(None, description="Units in stock")
    purchaseCount: float = Field(0, description="Units sold so far")
    category: Optional[str] = None
    description: Optional[str] = None
    addedBy: Owner


class WishlistItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    foodId: str = Field(..., min_length=1, description="Referenced food _id as string")
    name: Optional[str] = None
    image: Optional[str] = None
    user: Owner


class OrderLine(BaseModel):
    foodId: str = Field(..., description="Referenced food _id as string")
    quantity: int = Field(..., gt=0, description="Units ordered")


class Order(BaseModel):
    """Checkout request body; the owner is taken from the session token."""
    items: List[OrderLine] = Field(..., min_length=1, description="Ordered lines")


# Request-only models

class TokenRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr
