from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class MediaCreate(BaseModel):
    url: str
    secure_url: str
    storage_id: str
    byte_size: int = 0
    format: Optional[str] = None
    file_name: Optional[str] = None


class MediaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    secure_url: str
    storage_id: str
    byte_size: int
    format: Optional[str] = None
    file_name: Optional[str] = None
