from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class TrackClickRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId", min_length=1)
    source: Optional[str] = "unknown"
