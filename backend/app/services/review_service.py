# Overview: Service-layer operations for product reviews; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Review, User
from ..permissions import require_owner_or_admin
from app.errors import NotFoundError, ValidationError
from app.validation import parse_bool, parse_int


REVIEW_SORT_FIELDS = {
    "createdAt": Review.created_at,
    "rating": Review.rating,
}


def _parse_rating(value) -> int:
    try:
        rating = parse_int(value, "rating")
    except ValidationError:
        raise ValidationError("Rating must be between 1 and 5")
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    return rating


def refresh_product_rating(product_id: int) -> None:
    """Recompute average rating and review count from approved reviews. Does not commit."""
    average, count = (
        db.session.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .one()
    )
    product = db.session.get(Product, product_id)
    if product is None:
        return
    product.average_rating = round(float(average or 0), 2)
    product.total_reviews = int(count or 0)


def create_review(user: User, data: dict) -> Review:
    if not data.get("productId") or not data.get("rating"):
        raise ValidationError("Product ID and rating are required")
    rating = _parse_rating(data["rating"])
    product_id = parse_int(data["productId"], "productId", minimum=1)

    if db.session.get(Product, product_id) is None:
        raise NotFoundError("Product not found")
    existing = db.session.query(Review).filter_by(user_id=user.id, product_id=product_id).first()
    if existing is not None:
        raise ValidationError("You have already reviewed this product")

    review = Review(user_id=user.id, product_id=product_id, rating=rating, comment=data.get("comment") or None)
    db.session.add(review)
    db.session.flush()
    refresh_product_rating(product_id)
    db.session.commit()
    return review


def product_reviews(product_id: int, *, page: int, limit: int, sort_by: str | None = None, sort_order: str | None = None):
    """Approved reviews for one product. Returns (reviews, total, distribution)."""
    query = db.session.query(Review).filter(Review.product_id == product_id, Review.is_approved.is_(True))
    total = query.count()

    column = REVIEW_SORT_FIELDS.get(sort_by or "createdAt", Review.created_at)
    ordering = column.asc() if (sort_order or "desc").lower() == "asc" else column.desc()
    reviews = query.order_by(ordering, Review.id.desc()).offset((page - 1) * limit).limit(limit).all()

    distribution = {str(star): 0 for star in range(1, 6)}
    rows = (
        db.session.query(Review.rating, func.count(Review.id))
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .group_by(Review.rating)
        .all()
    )
    for rating, count in rows:
        distribution[str(rating)] = count
    return reviews, total, distribution


def my_reviews(user_id: int) -> list[Review]:
    return (
        db.session.query(Review)
        .filter(Review.user_id == user_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


def _get_review(review_id: int) -> Review:
    review = db.session.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    return review


def update_review(user: User, review_id: int, data: dict) -> Review:
    review = _get_review(review_id)
    require_owner_or_admin(user, review.user_id, "Not authorized to update this review")

    if data.get("rating") not in (None, ""):
        review.rating = _parse_rating(data["rating"])
    if "comment" in data:
        review.comment = data["comment"] or None
    db.session.flush()
    refresh_product_rating(review.product_id)
    db.session.commit()
    return review


def delete_review(user: User, review_id: int) -> None:
    review = _get_review(review_id)
    require_owner_or_admin(user, review.user_id, "Not authorized to delete this review")
    product_id = review.product_id
    db.session.delete(review)
    db.session.flush()
    refresh_product_rating(product_id)
    db.session.commit()


def list_reviews(args, *, page: int, limit: int):
    """Admin listing with optional approval and rating filters. Returns (reviews, total)."""
    query = db.session.query(Review)
    if args.get("isApproved") not in (None, ""):
        query = query.filter(Review.is_approved.is_(parse_bool(args["isApproved"])))
    if args.get("rating") not in (None, ""):
        query = query.filter(Review.rating == _parse_rating(args["rating"]))
    total = query.count()
    reviews = (
        query.order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return reviews, total


def set_approval(review_id: int, data: dict) -> Review:
    review = _get_review(review_id)
    review.is_approved = data.get("isApproved") is not False
    db.session.flush()
    refresh_product_rating(review.product_id)
    db.session.commit()
    return review
