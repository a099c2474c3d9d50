"""Listing form input models - selected files and typed field-update commands."""

from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field


# Field identifiers the edit/create form exposes
FORM_FIELDS = (
    "type",
    "name",
    "bedrooms",
    "bathrooms",
    "parking",
    "furnished",
    "address",
    "offer",
    "regular_price",
    "discounted_price",
    "latitude",
    "longitude",
)


class ImageFile(BaseModel):
    """A user-selected image awaiting upload."""
    name: str = Field(..., min_length=1, description="Original file name")
    content: bytes = Field(..., repr=False, description="Raw file bytes")
    content_type: str = Field("image/jpeg", description="MIME type")

    @property
    def size(self) -> int:
        return len(self.content)


class SetText(BaseModel):
    kind: Literal["text"] = "text"
    field: str
    value: str


class SetNumber(BaseModel):
    kind: Literal["number"] = "number"
    field: str
    value: Union[int, float]


class SetFlag(BaseModel):
    kind: Literal["flag"] = "flag"
    field: str
    value: bool


class SelectImages(BaseModel):
    """Replaces the whole image selection."""
    kind: Literal["images"] = "images"
    files: list[ImageFile] = Field(default_factory=list)


FieldUpdate = Annotated[
    Union[SetText, SetNumber, SetFlag, SelectImages],
    Field(discriminator="kind"),
]
