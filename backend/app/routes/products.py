# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/app/routes/products.py
"""
Product catalog routes.

Browsing is public. Create, update and delete require an ADMIN token and
accept either JSON or multipart form data with up to five "images" files.
Prices are given in rupees and stored in paisa.
"""
from flask import Blueprint, request, jsonify, g

from ..services import products_service, upload_service
from ..validation import parse_bool, parse_pagination, pagination_meta
from ..decorators import optional_auth, require_admin

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data


@products_bp.get("")
@optional_auth
def list_products_route():
    """
    List active products.

    Query params:
    - search, category, minPrice, maxPrice (rupees), featured, inStock
    - sort: createdAt | price | name | rating, prefix "-" for descending
    - page, limit (default 12)
    """
    page, limit = parse_pagination(request.args, default_limit=12)
    products, total = products_service.list_products(request.args, page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(products),
        "pagination": pagination_meta(page, limit, total),
        "data": [p.to_dict() for p in products],
    })


@products_bp.get("/featured")
def featured_products_route():
    limit = min(request.args.get("limit", 8, type=int) or 8, 50)
    products = products_service.featured_products(limit)
    return jsonify({"success": True, "count": len(products), "data": [p.to_dict() for p in products]})


@products_bp.get("/search")
def search_products_route():
    products = products_service.quick_search(request.args.get("q"))
    return jsonify({"success": True, "count": len(products), "data": [p.to_summary() for p in products]})


@products_bp.get("/categories")
def categories_route():
    return jsonify({"success": True, "data": products_service.categories_with_counts()})


@products_bp.get("/category/<category>")
def products_by_category_route(category: str):
    page, limit = parse_pagination(request.args, default_limit=12)
    products, total = products_service.products_by_category(category, page=page, limit=limit)
    return jsonify({
        "success": True,
        "count": len(products),
        "pagination": pagination_meta(page, limit, total),
        "data": [p.to_dict() for p in products],
    })


@products_bp.get("/<int:product_id>")
@optional_auth
def get_product_route(product_id: int):
    product = products_service.get_product(product_id, viewer=g.current_user)
    data = product.to_dict()
    data["reviews"] = [r.to_dict() for r in products_service.latest_reviews(product.id)]
    return jsonify({"success": True, "data": data})


@products_bp.post("")
@require_admin
def create_product_route():
    data = _payload()
    image_urls = upload_service.save_images(request.files.getlist("images"), "products")
    product = products_service.create_product(data, user_id=g.current_user.id, image_urls=image_urls)
    return jsonify({"success": True, "message": "Product created successfully!", "data": product.to_dict()}), 201


@products_bp.put("/<int:product_id>")
@require_admin
def update_product_route(product_id: int):
    data = _payload()
    image_urls = upload_service.save_images(request.files.getlist("images"), "products")
    product = products_service.update_product(
        product_id, data, user_id=g.current_user.id, new_image_urls=image_urls
    )
    return jsonify({"success": True, "message": "Product updated successfully!", "data": product.to_dict()})


@products_bp.delete("/<int:product_id>")
@require_admin
def delete_product_route(product_id: int):
    """
    Soft delete by default. Products with orders or reviews answer with a
    warning first; repeat with ?force=true to remove them and related rows.
    """
    result = products_service.delete_product(product_id, force=parse_bool(request.args.get("force", False)))
    if result["warning"]:
        return jsonify({
            "success": False,
            "warning": True,
            "message": (
                f"This product has {result['orderCount']} order(s) and {result['reviewCount']} review(s). "
                "Are you sure you want to delete it? Add ?force=true to confirm."
            ),
            "data": {"orderCount": result["orderCount"], "reviewCount": result["reviewCount"]},
        })
    if result["hardDeleted"]:
        return jsonify({"success": True, "message": "Product and all related data deleted successfully!"})
    return jsonify({"success": True, "message": "Product deleted successfully!"})


@products_bp.delete("/<int:product_id>/permanent")
@require_admin
def permanent_delete_product_route(product_id: int):
    products_service.permanent_delete_product(product_id)
    return jsonify({"success": True, "message": "Product permanently deleted!"})
