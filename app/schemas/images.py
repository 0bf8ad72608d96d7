"""Request/response schemas for image upload endpoints."""

from pydantic import BaseModel, Field


class ImageUploadResponse(BaseModel):
    """Response after storing one image."""

    model_config = {"populate_by_name": True}

    image_url: str = Field(..., alias="imageUrl", description="URL that serves the image")
    reference: str = Field(..., description="Opaque reference assigned by the image store")


class MultiImageUploadResponse(BaseModel):
    """Response after storing several images, in upload order."""

    model_config = {"populate_by_name": True}

    image_urls: list[str] = Field(default_factory=list, alias="imageUrls")
    references: list[str] = Field(default_factory=list)


class ImageDeleteResponse(BaseModel):
    """Confirmation of an explicit image deletion."""

    message: str
    reference: str
