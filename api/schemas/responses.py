"""Response schemas for the API."""

from pydantic import BaseModel


class ProductResponse(BaseModel):
    id: str
    name: str
    basePrice: int
