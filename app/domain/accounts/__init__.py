"""Accounts domain - profiles, provisioning and credential delivery"""

from .router import admin_router, router, superadmin_router

__all__ = ["router", "superadmin_router", "admin_router"]
