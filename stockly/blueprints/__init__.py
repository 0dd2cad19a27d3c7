"""
Application blueprints.

Every blueprint here serves JSON under ``/api``.
"""
from .deliveries import bp as deliveries_bp
from .order_book import bp as order_book_bp
from .purchasing import bp as purchasing_bp
from .reports import bp as reports_bp
from .users import bp as users_bp

API_BLUEPRINTS = (order_book_bp, purchasing_bp, deliveries_bp, users_bp, reports_bp)

__all__ = [
    "order_book_bp",
    "purchasing_bp",
    "deliveries_bp",
    "users_bp",
    "reports_bp",
    "API_BLUEPRINTS",
]
