from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.media import MediaCreate, MediaOut
from services import media_service
from services.auth import require_admin

router = APIRouter()


@router.post("", response_model=MediaOut, status_code=status.HTTP_201_CREATED)
def register_media(
    payload: MediaCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return media_service.register_media(db, **payload.model_dump())


@router.get("/{media_id}", response_model=MediaOut)
def get_media(media_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return media_service.get_media(db, media_id)
