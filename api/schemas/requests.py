"""Request schemas for the API."""

from typing import Any

from pydantic import BaseModel, Field


class ProductUpsertRequest(BaseModel):
    """
    Create or update a catalog product.

    Fields are loosely typed; the catalog validates them and bad values
    come back as 400 with an error message.
    """
    id: Any = Field(default=None, description="Product id; trimmed and uppercased")
    name: Any = Field(default=None, description="Display name; defaults to the id")
    basePrice: Any = Field(default=None, description="Base price in micro-units")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"id": "macbook", "name": "MacBook Pro M3", "basePrice": 2499000000},
            ]
        }
    }
