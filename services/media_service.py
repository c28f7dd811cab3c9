from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Session

from models.media import Media
from services.errors import NotFoundError


def register_media(
    db: Session,
    *,
    url: str,
    secure_url: str,
    storage_id: str,
    byte_size: int = 0,
    format: Optional[str] = None,
    file_name: Optional[str] = None,
) -> Media:
    """Record an asset the object store already holds; re-registering a storage id updates it."""
    media = db.query(Media).filter(Media.storage_id == storage_id).first()
    if media is None:
        media = Media(storage_id=storage_id)
        db.add(media)
    media.url = url
    media.secure_url = secure_url
    media.byte_size = byte_size
    media.format = format
    media.file_name = file_name
    db.commit()
    db.refresh(media)
    return media


def get_media(db: Session, media_id: int) -> Media:
    media = db.get(Media, media_id)
    if not media:
        raise NotFoundError("Media not found")
    return media
