"""
Role permissions.

Three roles share one dashboard:
    super_admin - everything, across all brands
    owner       - manages their own brand, its stores, reviews and posts
    manager     - read-only access to their own brand
"""

from typing import Optional

PERMISSIONS = {
    "super_admin": {
        # Brands
        "create_brand": True,
        "edit_brand": True,
        "delete_brand": True,
        "view_all_brands": True,
        # Stores
        "create_store": True,
        "edit_store": True,
        "delete_store": True,
        "view_all_stores": True,
        # Reviews
        "reply_to_review": True,
        "delete_review": True,
        "view_all_reviews": True,
        # Posts
        "create_post": True,
        "edit_post": True,
        "delete_post": True,
        "view_all_posts": True,
        # Users
        "create_user": True,
        "edit_user": True,
        "delete_user": True,
        "view_all_users": True,
        # System
        "view_system_settings": True,
        "edit_system_settings": True,
    },
    "owner": {
        "create_brand": False,
        "edit_brand": True,  # own brand only
        "delete_brand": False,
        "view_all_brands": False,
        "create_store": True,
        "edit_store": True,
        "delete_store": True,
        "view_all_stores": False,
        "reply_to_review": True,
        "delete_review": False,
        "view_all_reviews": False,
        "create_post": True,
        "edit_post": True,
        "delete_post": True,
        "view_all_posts": False,
        "create_user": False,
        "edit_user": False,
        "delete_user": False,
        "view_all_users": False,
        "view_system_settings": False,
        "edit_system_settings": False,
    },
    "manager": {
        "create_brand": False,
        "edit_brand": False,
        "delete_brand": False,
        "view_all_brands": False,
        "create_store": False,
        "edit_store": False,
        "delete_store": False,
        "view_all_stores": False,
        "reply_to_review": False,
        "delete_review": False,
        "view_all_reviews": False,
        "create_post": False,
        "edit_post": False,
        "delete_post": False,
        "view_all_posts": False,
        "create_user": False,
        "edit_user": False,
        "delete_user": False,
        "view_all_users": False,
        "view_system_settings": False,
        "edit_system_settings": False,
    },
}


def has_permission(role: str, permission: str) -> bool:
    return PERMISSIONS.get(role, {}).get(permission, False)


def can_access_brand(role: str, user_brand_id: Optional[int], brand_id: Optional[int]) -> bool:
    """Super admins see every brand; owners and managers only their own."""
    if role == "super_admin":
        return True
    if role in ("owner", "manager"):
        return user_brand_id is not None and user_brand_id == brand_id
    return False


def get_role_permissions(role: str) -> dict:
    return dict(PERMISSIONS.get(role) or PERMISSIONS["manager"])
