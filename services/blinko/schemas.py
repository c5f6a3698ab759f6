"""Response shapes returned by the Blinko note service."""

from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class UploadedFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_path: str = Field(alias="filePath")
    file_name: str = Field(alias="fileName")
    type: str = "image/jpeg"
    size: int = 0


class NoteResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[Union[int, str]] = None
