from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, selectinload

from models.enums import CheckoutState
from models.media import Media
from models.order import CheckoutIntent
from models.portfolio import Investment, Portfolio, PortfolioGalleryImage
from services.errors import ConflictError, NotFoundError, ValidationError
from utils.common_helpers import is_int_like
from utils.pagination import PageParams, day_bounds, paginate

logger = logging.getLogger(__name__)

_OPEN_CHECKOUT_STATES = (CheckoutState.INTENT_CREATED, CheckoutState.AWAITING_CONFIRMATION)
_SLUG_SUFFIX = re.compile(r"^(.*)-(\d+)$")
_SORTABLE = {
    "title": Portfolio.title,
    "price": Portfolio.price,
    "share_price": Portfolio.share_price,
    "remaining_shares": Portfolio.remaining_shares,
    "created_at": Portfolio.created_at,
}


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-")
    return slug or "portfolio"


def _slug_taken(db: Session, slug: str, exclude_id: Optional[int]) -> bool:
    query = db.query(Portfolio.id).filter(Portfolio.slug == slug)
    if exclude_id is not None:
        query = query.filter(Portfolio.id != exclude_id)
    return query.first() is not None


def validate_slug(db: Session, slug: str, exclude_id: Optional[int] = None) -> str:
    """
    Return ``slug`` if free, otherwise the first free ``base-N``.

    A trailing ``-N`` on the requested slug is treated as the counter, so a
    taken ``downtown-1`` continues at ``downtown-2``.
    """
    if not _slug_taken(db, slug, exclude_id):
        return slug

    match = _SLUG_SUFFIX.match(slug)
    if match:
        base, counter = match.group(1), int(match.group(2)) + 1
    else:
        base, counter = slug, 1

    candidate = f"{base}-{counter}"
    while _slug_taken(db, candidate, exclude_id):
        counter += 1
        candidate = f"{base}-{counter}"
    return candidate


def _with_media(query):
    return query.options(
        selectinload(Portfolio.featured_image),
        selectinload(Portfolio.gallery).selectinload(PortfolioGalleryImage.media),
    )


def get_portfolio_by_id(db: Session, portfolio_id: int) -> Portfolio:
    portfolio = _with_media(db.query(Portfolio)).filter(Portfolio.id == portfolio_id).first()
    if not portfolio:
        raise NotFoundError("Portfolio not found")
    return portfolio


def get_portfolio_by_slug(db: Session, slug: str) -> Portfolio:
    portfolio = _with_media(db.query(Portfolio)).filter(Portfolio.slug == slug).first()
    if not portfolio:
        raise NotFoundError("Portfolio not found")
    return portfolio


def get_portfolio(db: Session, identifier: str) -> Portfolio:
    """Numeric identifiers are ids, anything else is a slug."""
    if is_int_like(identifier):
        return get_portfolio_by_id(db, int(identifier))
    return get_portfolio_by_slug(db, identifier)


def list_portfolios(db: Session, params: PageParams) -> dict[str, Any]:
    query = _with_media(db.query(Portfolio))
    if params.search:
        term = f"%{params.search.strip()}%"
        query = query.filter(or_(Portfolio.title.ilike(term), Portfolio.slug.ilike(term)))
    start, end = day_bounds(params.date_from, params.date_to)
    if start is not None:
        query = query.filter(Portfolio.created_at >= start)
    if end is not None:
        query = query.filter(Portfolio.created_at < end)

    column = _SORTABLE.get(params.sort_by or "created_at", Portfolio.created_at)
    order = column.asc() if params.sort_order == "asc" else column.desc()
    query = query.order_by(order, Portfolio.id.desc())
    return paginate(query, params)


def list_portfolio_options(db: Session) -> list[dict[str, Any]]:
    rows = db.query(Portfolio.id, Portfolio.title, Portfolio.slug).order_by(Portfolio.title.asc()).all()
    return [{"id": r.id, "title": r.title, "slug": r.slug} for r in rows]


def _check_media_ids(db: Session, media_ids: Iterable[int]) -> list[int]:
    ordered: list[int] = []
    for media_id in media_ids:
        if media_id not in ordered:
            ordered.append(media_id)
    if not ordered:
        return ordered
    found = {row.id for row in db.query(Media.id).filter(Media.id.in_(ordered)).all()}
    missing = [m for m in ordered if m not in found]
    if missing:
        raise NotFoundError(f"Media not found: {', '.join(str(m) for m in missing)}")
    return ordered


def create_portfolio(
    db: Session,
    author_id: int,
    *,
    title: str,
    price: float,
    shares: int,
    share_price: float,
    slug: Optional[str] = None,
    description: Optional[str] = None,
    category: str = "PROPERTY",
    featured_image_id: Optional[int] = None,
    gallery_ids: Iterable[int] = (),
) -> Portfolio:
    if shares <= 0:
        raise ValidationError("Shares must be greater than zero")
    if share_price <= 0:
        raise ValidationError("Share price must be greater than zero")
    if featured_image_id is not None:
        _check_media_ids(db, [featured_image_id])
    gallery = _check_media_ids(db, gallery_ids)

    portfolio = Portfolio(
        title=title,
        slug=validate_slug(db, slugify(slug or title)),
        description=description,
        category=category,
        featured_image_id=featured_image_id,
        author_id=author_id,
        price=price,
        shares=shares,
        share_price=share_price,
        remaining_shares=shares,
        remaining_investment=shares * share_price,
    )
    db.add(portfolio)
    db.flush()

    for index, media_id in enumerate(gallery):
        db.add(PortfolioGalleryImage(portfolio_id=portfolio.id, media_id=media_id, display_order=index))

    db.commit()
    logger.info("portfolio_created portfolio_id=%s shares=%s", portfolio.id, shares)
    return get_portfolio_by_id(db, portfolio.id)


def _sync_gallery(db: Session, portfolio: Portfolio, requested: list[int]) -> None:
    existing = {row.media_id: row for row in portfolio.gallery}
    requested_set = set(requested)

    for media_id, row in existing.items():
        if media_id not in requested_set:
            db.delete(row)

    for index, media_id in enumerate(requested):
        row = existing.get(media_id)
        if row is None:
            db.add(PortfolioGalleryImage(portfolio_id=portfolio.id, media_id=media_id, display_order=index))
        else:
            row.display_order = index


def update_portfolio(db: Session, portfolio_id: int, changes: dict[str, Any]) -> Portfolio:
    """
    Apply a partial update. ``changes`` holds only the fields the caller sent;
    ``gallery_ids`` (when present) is the complete, ordered gallery.
    """
    portfolio = get_portfolio_by_id(db, portfolio_id)
    sold = portfolio.sold_shares

    if changes.get("slug"):
        portfolio.slug = validate_slug(db, slugify(changes["slug"]), exclude_id=portfolio.id)

    for field in ("title", "description", "category", "price"):
        if field in changes and changes[field] is not None:
            setattr(portfolio, field, changes[field])

    if "featured_image_id" in changes:
        if changes["featured_image_id"] is not None:
            _check_media_ids(db, [changes["featured_image_id"]])
        portfolio.featured_image_id = changes["featured_image_id"]

    if changes.get("share_price") is not None:
        if changes["share_price"] <= 0:
            raise ValidationError("Share price must be greater than zero")
        portfolio.share_price = changes["share_price"]

    if changes.get("shares") is not None:
        if changes["shares"] < sold:
            raise ValidationError(f"Shares cannot be lower than the {sold} already sold")
        portfolio.shares = changes["shares"]
        portfolio.remaining_shares = portfolio.shares - sold

    portfolio.remaining_investment = portfolio.remaining_shares * portfolio.share_price

    if "gallery_ids" in changes and changes["gallery_ids"] is not None:
        _sync_gallery(db, portfolio, _check_media_ids(db, changes["gallery_ids"]))

    db.commit()
    db.expire_all()
    return get_portfolio_by_id(db, portfolio.id)


def delete_portfolio(db: Session, portfolio_id: int) -> None:
    """
    Remove a portfolio nobody has bought into.

    Payments, checkout snapshots and dividend rows keep their history with a
    null ``portfolio_id``; a portfolio with investments or an open checkout
    cannot be deleted.
    """
    portfolio = get_portfolio_by_id(db, portfolio_id)
    invested = db.query(Investment.id).filter(Investment.portfolio_id == portfolio.id).first()
    if invested:
        raise ConflictError("Portfolio has investments and cannot be deleted")
    open_checkout = (
        db.query(CheckoutIntent.id)
        .filter(
            CheckoutIntent.portfolio_id == portfolio.id,
            CheckoutIntent.state.in_(_OPEN_CHECKOUT_STATES),
        )
        .first()
    )
    if open_checkout:
        raise ConflictError("Portfolio has a checkout awaiting confirmation")
    db.delete(portfolio)
    db.commit()
    logger.info("portfolio_deleted portfolio_id=%s", portfolio_id)


def deduct_inventory(
    db: Session,
    user_id: int,
    portfolio_id: int,
    shares: int,
    share_price: float,
) -> Investment:
    """
    Take ``shares`` out of the portfolio and record the investment.

    The decrement is a single conditional UPDATE, so two concurrent buyers can
    never push ``remaining_shares`` below zero: the loser matches no row and gets
    a ConflictError. Does not commit; the caller owns the transaction.
    """
    if shares <= 0:
        raise ValidationError("Shares must be greater than zero")
    exists = db.query(Portfolio.id).filter(Portfolio.id == portfolio_id).first()
    if not exists:
        raise NotFoundError("Portfolio not found")

    result = db.execute(
        update(Portfolio)
        .where(Portfolio.id == portfolio_id, Portfolio.remaining_shares >= shares)
        .values(
            remaining_shares=Portfolio.remaining_shares - shares,
            remaining_investment=(Portfolio.remaining_shares - shares) * Portfolio.share_price,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning("inventory_conflict portfolio_id=%s shares=%s", portfolio_id, shares)
        raise ConflictError("Not enough shares available, please try again")

    investment = Investment(
        investor_id=user_id,
        portfolio_id=portfolio_id,
        shares=shares,
        share_price=share_price,
        total_investment=shares * share_price,
    )
    db.add(investment)
    db.flush()

    portfolio = db.get(Portfolio, portfolio_id)
    if portfolio is not None:
        db.refresh(portfolio)
    return investment
