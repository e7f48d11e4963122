# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/app/routes/auth.py
"""
Authentication API routes

Tokens are stateless JWTs; logout is acknowledged client-side only.

SECURITY FEATURES:
- Signup always creates a USER account, whatever role the body claims
- Forgot-password answers identically for known and unknown emails
- Blocked and inactive accounts are refused at login and on every request
"""

from flask import Blueprint, request, jsonify, g

from ..services import auth_service, upload_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/signup")
def signup_route():
    data = request.get_json(silent=True) or {}
    user, token = auth_service.signup(data)
    return jsonify({
        "success": True,
        "message": "Account created successfully",
        "data": {"user": user.to_dict(), "token": token},
    }), 201


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    user, token = auth_service.login(data.get("email"), data.get("password"))
    return jsonify({
        "success": True,
        "message": "Login successful",
        "data": {"user": user.to_dict(), "token": token},
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    return jsonify({"success": True, "message": "Logged out successfully"})


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"success": True, "data": auth_service.get_profile(g.current_user)})


@auth_bp.put("/profile")
@require_auth
def update_profile_route():
    data = request.get_json(silent=True) or {}
    user = auth_service.update_profile(g.current_user, data)
    return jsonify({"success": True, "message": "Profile updated successfully", "data": user.to_dict()})


@auth_bp.put("/profile-picture")
@require_auth
def profile_picture_route():
    """Multipart upload; field name "profileImage"."""
    image_url = upload_service.save_image(request.files.get("profileImage"), "profiles")
    user = auth_service.set_profile_image(g.current_user, image_url)
    return jsonify({
        "success": True,
        "message": "Profile picture updated successfully",
        "data": {"profileImage": user.profile_image, "user": user.to_dict()},
    })


@auth_bp.put("/change-password")
@require_auth
def change_password_route():
    data = request.get_json(silent=True) or {}
    token = auth_service.change_password(g.current_user, data)
    return jsonify({"success": True, "message": "Password changed successfully", "data": {"token": token}})


@auth_bp.post("/forgot-password")
def forgot_password_route():
    data = request.get_json(silent=True) or {}
    auth_service.forgot_password(data.get("email"))
    return jsonify({"success": True, "message": auth_service.FORGOT_PASSWORD_MESSAGE})


@auth_bp.route("/reset-password/<token>", methods=["POST", "PUT"])
def reset_password_route(token: str):
    data = request.get_json(silent=True) or {}
    new_token = auth_service.reset_password(token, data)
    return jsonify({
        "success": True,
        "message": "Password reset successful. You can now log in with your new password.",
        "data": {"token": new_token},
    })


@auth_bp.delete("/account")
@require_auth
def delete_account_route():
    auth_service.delete_own_account(g.current_user)
    return jsonify({"success": True, "message": "Your account has been deleted successfully"})
