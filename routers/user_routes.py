from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from schemas.auth import UserOut
from schemas.common import Page, page_params
from schemas.overview import AdminOverviewOut, UserOverviewOut
from services import overview_service, user_service
from services.auth import get_current_user, require_admin
from utils.pagination import PageParams

router = APIRouter()


@router.get("/overview", response_model=UserOverviewOut)
def user_overview(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return overview_service.user_overview(db, user.id)


@router.get("/admin/overview", response_model=AdminOverviewOut)
def admin_overview(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return overview_service.admin_overview(db)


@router.get("/admin/investors", response_model=Page[UserOut])
def investors(
    db: Session = Depends(get_db),
    params: PageParams = Depends(page_params),
    admin: User = Depends(require_admin),
):
    return user_service.list_investors(db, params)
