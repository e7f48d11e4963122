# Overview: Flask API routes for product review operations; parses input and returns JSON responses.

# backend/app/routes/reviews.py
"""Product review routes. Product ratings are recomputed after every change."""

from flask import Blueprint, request, jsonify, g

from ..services import review_service
from ..validation import parse_pagination, pagination_meta
from ..decorators import require_auth, require_admin


reviews_bp = Blueprint("reviews", __name__, url_prefix="/api/reviews")


@reviews_bp.get("/product/<int:product_id>")
def product_reviews_route(product_id: int):
    page, limit = parse_pagination(request.args)
    reviews, total, distribution = review_service.product_reviews(
        product_id,
        page=page,
        limit=limit,
        sort_by=request.args.get("sortBy"),
        sort_order=request.args.get("sortOrder"),
    )
    return jsonify({
        "success": True,
        "count": len(reviews),
        "pagination": pagination_meta(page, limit, total),
        "ratingDistribution": distribution,
        "data": [r.to_dict() for r in reviews],
    })


@reviews_bp.get("/my-reviews")
@require_auth
def my_reviews_route():
    reviews = review_service.my_reviews(g.current_user.id)
    return jsonify({"success": True, "count": len(reviews), "data": [r.to_dict() for r in reviews]})


@reviews_bp.post("")
@require_auth
def create_review_route():
    data = request.get_json(silent=True) or {}
    review = review_service.create_review(g.current_user, data)
    return jsonify({"success": True, "message": "Review added successfully", "data": review.to_dict()}), 201


@reviews_bp.put("/<int:review_id>")
@require_auth
def update_review_route(review_id: int):
    data = request.get_json(silent=True) or {}
    review = review_service.update_review(g.current_user, review_id, data)
    return jsonify({"success": True, "message": "Review updated successfully", "data": review.to_dict()})


@reviews_bp.delete("/<int:review_id>")
@require_auth
def delete_review_route(review_id: int):
    review_service.delete_review(g.current_user, review_id)
    return jsonify({"success": True, "message": "Review deleted successfully"})


@reviews_bp.get("")
@require_admin
def list_reviews_route():
    """Query params: isApproved, rating, page, limit"""
    page, limit = parse_pagination(request.args, default_limit=20)
    reviews, total = review_service.list_reviews(request.args, page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(reviews),
        "pagination": pagination_meta(page, limit, total),
        "data": [r.to_dict() for r in reviews],
    })


@reviews_bp.put("/<int:review_id>/approve")
@require_admin
def approve_review_route(review_id: int):
    data = request.get_json(silent=True) or {}
    review = review_service.set_approval(review_id, data)
    return jsonify({
        "success": True,
        "message": f"Review {'approved' if review.is_approved else 'disapproved'}",
        "data": review.to_dict(),
    })
