"""Image endpoints: upload (single and multiple), explicit delete, and serving by reference."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile, status

from app.api.dependencies import get_image_store
from app.api.v1.auth import require_editor
from app.core.config import get_settings
from app.schemas.auth import CurrentUser
from app.schemas.images import (
    ImageDeleteResponse,
    ImageUploadResponse,
    MultiImageUploadResponse,
)
from app.services.image_store import ImageStore
from app.services.images import (
    delete_image,
    image_response_headers,
    image_url,
    serve_image,
    upload_image,
)


router = APIRouter()


async def _store_upload(store: ImageStore, file: UploadFile, max_bytes: int) -> str:
    # Read one byte past the ceiling so oversized files are rejected without buffering them whole.
    data = await file.read(max_bytes + 1)
    return upload_image(
        store,
        data=data,
        filename=file.filename or "",
        content_type=file.content_type,
        max_bytes=max_bytes,
    )


@router.post(
    "/upload",
    response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_single(
    image: Annotated[UploadFile, File(description="Image file")],
    _user: Annotated[CurrentUser, Depends(require_editor)],
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> ImageUploadResponse:
    """
    Store one image (multipart field `image`). Only image/* types up to
    MAX_IMAGE_BYTES are accepted. Returns the URL to use in a post's images.
    """
    settings = get_settings()
    reference = await _store_upload(store, image, settings.MAX_IMAGE_BYTES)
    return ImageUploadResponse(
        image_url=image_url(reference, settings.API_V1_PREFIX),
        reference=reference,
    )


@router.post(
    "/upload-multiple",
    response_model=MultiImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_multiple(
    images: Annotated[list[UploadFile], File(description="Image files")],
    _user: Annotated[CurrentUser, Depends(require_editor)],
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> MultiImageUploadResponse:
    """
    Store several images (multipart field `images`, repeated). The request fails
    as a whole on the first invalid file; images already stored by it are removed.
    """
    settings = get_settings()
    if len(images) > settings.MAX_IMAGES_PER_REQUEST:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.MAX_IMAGES_PER_REQUEST} images per request.",
        )
    references: list[str] = []
    try:
        for file in images:
            references.append(await _store_upload(store, file, settings.MAX_IMAGE_BYTES))
    except Exception:
        for reference in references:
            store.delete(reference)
        raise
    return MultiImageUploadResponse(
        image_urls=[image_url(r, settings.API_V1_PREFIX) for r in references],
        references=references,
    )


@router.delete("/upload/{reference}", response_model=ImageDeleteResponse)
def delete_upload(
    reference: str,
    _user: Annotated[CurrentUser, Depends(require_editor)],
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> ImageDeleteResponse:
    """Delete an image even if posts still reference it. 404 when absent."""
    delete_image(store, reference)
    return ImageDeleteResponse(message="Image deleted.", reference=reference)


@router.get(
    "/images/{reference}",
    response_class=Response,
    responses={200: {"content": {"image/*": {}}}},
)
def get_image(
    reference: str,
    store: Annotated[ImageStore, Depends(get_image_store)],
) -> Response:
    """
    Serve image bytes. References never change, so responses are cacheable for a year.
    SVG is served sandboxed.
    """
    data, media_type = serve_image(store, reference)
    return Response(
        content=data,
        media_type=media_type,
        headers=image_response_headers(media_type),
    )
