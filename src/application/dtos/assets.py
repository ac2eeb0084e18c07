"""DTOs for asset upload and delivery."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UploadResponse(BaseModel):
    """Response after an image upload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    image_url: str = Field(description="URL the stored image is served from")
    filename: str = Field(description="Logical name of the stored blob")
    size_bytes: int = Field(ge=0, description="Stored size in bytes")
    mime_type: str = Field(description="Content type recorded with the blob")
