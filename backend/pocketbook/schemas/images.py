"""Image metadata schemas. Payload bytes travel as multipart uploads and raw downloads."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from pocketbook.domain import Image


class ImageResponse(BaseModel):
    image_id: str
    user_id: str
    name: str
    description: str
    url: Optional[str] = None
    file_name: str
    format: str
    size: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, image: Image) -> "ImageResponse":
        return cls(
            image_id=image.id,
            user_id=image.account_id,
            name=image.name,
            description=image.description,
            url=image.url,
            file_name=image.file_name,
            format=image.format,
            size=len(image.payload),
            created_at=image.created_at,
            updated_at=image.updated_at,
        )


class ImageListResponse(BaseModel):
    images: List[ImageResponse]
