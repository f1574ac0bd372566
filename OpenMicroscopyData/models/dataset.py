from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class Dataset(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    description: Optional[str] = None
    child_count: Optional[int] = Field(default=None, alias="childCount")
