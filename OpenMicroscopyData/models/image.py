from pydantic import BaseModel
from typing import Optional


class Image(BaseModel):
    id: int
    name: str
    thumb_url: Optional[str] = None

    @property
    def thumbnail_path(self) -> str:
        # Older webgateway records omit thumb_url
        return self.thumb_url or f"/webgateway/render_thumbnail/{self.id}/"
