"""
Pocketbook Backend — Image Routes
==================================

What:  Image metadata CRUD plus raw payload upload and download.
How:   Uploads are multipart (`file` plus form fields), read fully into
       memory after a size check, and handed to the interactor, which
       writes the row and then the configured payload location.

    GET    /api/1/users/{user_id}/images                   metadata list
    GET    /api/1/users/{user_id}/images/{image_id}        metadata
    GET    /api/1/users/{user_id}/images/{image_id}/raw    payload bytes
    POST   /api/1/users/{user_id}/images                   upload
    PUT    /api/1/users/{user_id}/images/{image_id}        metadata and/or new file
    DELETE /api/1/users/{user_id}/images/{image_id}

A 502 from a create or update means the image was stored but the blob store
was not updated. PUT /images/{details.image_id} (a file is optional) pushes the
stored payload again; repeating the POST would create a second image.
"""

import logging
import mimetypes
from pathlib import PurePath
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status

from pocketbook.config import Settings
from pocketbook.domain import Image, Session
from pocketbook.exceptions import ValidationError
from pocketbook.routes.accounts import AUTH_RESPONSES
from pocketbook.routes.deps import get_app_settings, get_interactor, require_session
from pocketbook.schemas.common import ErrorResponse
from pocketbook.schemas.images import ImageListResponse, ImageResponse
from pocketbook.services.interactor import Interactor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/1/users/{user_id}/images", tags=["Images"])

WRITE_RESPONSES = {
    **AUTH_RESPONSES,
    400: {"description": "Empty or oversized file", "model": ErrorResponse},
    502: {"description": "Stored, but the blob store was not updated", "model": ErrorResponse},
}


def _image_format(file: UploadFile) -> str:
    suffix = PurePath(file.filename or "").suffix.lstrip(".").lower()
    if suffix:
        return suffix
    if file.content_type and "/" in file.content_type:
        return file.content_type.split("/", 1)[1].lower()
    return ""


async def read_upload(file: UploadFile, max_size: int) -> Tuple[bytes, str, str]:
    """
    Read an uploaded file, returning (payload, file_name, format).

    Raises:
        ValidationError: the file is empty or larger than `max_size`
    """
    try:
        if file.size is not None and file.size > max_size:
            raise ValidationError(
                message=f"File is larger than the {max_size // 1_048_576}MB limit",
                field="file",
                context={"size": file.size, "max_size": max_size},
            )
        payload = await file.read(max_size + 1)
    finally:
        await file.close()
    if len(payload) > max_size:
        raise ValidationError(
            message=f"File is larger than the {max_size // 1_048_576}MB limit",
            field="file",
            context={"max_size": max_size},
        )
    if not payload:
        raise ValidationError(message="Uploaded file is empty", field="file")
    return payload, file.filename or "", _image_format(file)


@router.get("", response_model=ImageListResponse, responses=AUTH_RESPONSES)
async def list_images(
    user_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> ImageListResponse:
    images = await interactor.list_images(user_id)
    return ImageListResponse(images=[ImageResponse.from_domain(i) for i in images])


@router.get("/{image_id}", response_model=ImageResponse, responses=AUTH_RESPONSES)
async def get_image(
    user_id: str,
    image_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> ImageResponse:
    return ImageResponse.from_domain(await interactor.get_image(user_id, image_id))


@router.get(
    "/{image_id}/raw",
    response_class=Response,
    responses={**AUTH_RESPONSES, 200: {"description": "Image bytes"}},
    summary="Download the image payload",
)
async def get_image_raw(
    user_id: str,
    image_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    image, payload = await interactor.get_image_payload(user_id, image_id)
    media_type, _ = mimetypes.guess_type(f"image.{image.format}")
    return Response(
        content=payload,
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "private, max-age=3600"},
    )


@router.post(
    "",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
    responses=WRITE_RESPONSES,
    summary="Upload an image",
)
async def create_image(
    user_id: str,
    file: UploadFile = File(..., description="Image file"),
    name: Optional[str] = Form(default=None, description="Display name; defaults to the file name"),
    description: str = Form(default=""),
    url: Optional[str] = Form(default=None, description="Where the image came from"),
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
    settings: Settings = Depends(get_app_settings),
) -> ImageResponse:
    payload, file_name, image_format = await read_upload(file, settings.max_image_size)
    logger.info("Image upload: user=%s size=%d format=%s", user_id, len(payload), image_format)
    draft = Image(
        account_id=user_id,
        name=name or file_name or "image",
        description=description,
        url=url,
        file_name=file_name,
        format=image_format,
        payload=payload,
    )
    return ImageResponse.from_domain(await interactor.create_image(user_id, draft))


@router.put("/{image_id}", response_model=ImageResponse, responses=WRITE_RESPONSES)
async def update_image(
    user_id: str,
    image_id: str,
    file: Optional[UploadFile] = File(default=None),
    name: Optional[str] = Form(default=None),
    description: Optional[str] = Form(default=None),
    url: Optional[str] = Form(default=None),
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
    settings: Settings = Depends(get_app_settings),
) -> ImageResponse:
    changes: Dict[str, Any] = {
        k: v for k, v in {"name": name, "description": description, "url": url}.items()
        if v is not None
    }
    if file is not None:
        payload, file_name, image_format = await read_upload(file, settings.max_image_size)
        changes.update(payload=payload, file_name=file_name, format=image_format)
    return ImageResponse.from_domain(await interactor.update_image(user_id, image_id, changes))


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT, responses=WRITE_RESPONSES)
async def delete_image(
    user_id: str,
    image_id: str,
    _session: Session = Depends(require_session),
    interactor: Interactor = Depends(get_interactor),
) -> Response:
    await interactor.delete_image(user_id, image_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
