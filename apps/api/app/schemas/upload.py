"""Upload response schema."""

from pydantic import BaseModel


class UploadRead(BaseModel):
    url: str
    file_name: str
    size: int
    original_size: int | None
    file_id: str

    model_config = {"from_attributes": True}
