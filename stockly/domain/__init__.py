"""Domain layer modules for stock purchasing and the order book."""

__all__ = [
    "suggestions",
    "order_book",
    "purchase_orders",
    "deliveries",
    "users",
    "exports",
]
