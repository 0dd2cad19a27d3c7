"""Shared Prometheus metrics used across the application."""

from prometheus_client import Counter


ORDER_UPSERTS_TOTAL = Counter(
    "stockly_order_upserts_total",
    "Total number of order-book upserts grouped by result.",
    ["result"],
)
ORDER_ITEMS_SKIPPED_TOTAL = Counter(
    "stockly_order_items_skipped_total",
    "Total number of submitted order items skipped as invalid.",
)
DUPLICATE_ORDERS_REMOVED_TOTAL = Counter(
    "stockly_duplicate_orders_removed_total",
    "Total number of duplicate order-book orders deleted during upserts.",
)
SUGGESTION_QUERY_FALLBACKS_TOTAL = Counter(
    "stockly_suggestion_query_fallbacks_total",
    "Total number of order-padding queries that fell back, grouped by stage.",
    ["stage"],
)
SUGGESTIONS_SERVED_TOTAL = Counter(
    "stockly_suggestions_served_total",
    "Total number of order-padding suggestions returned to clients.",
)
PURCHASE_ORDER_TRANSITIONS_TOTAL = Counter(
    "stockly_purchase_order_transitions_total",
    "Total number of purchase order status changes grouped by target status.",
    ["status"],
)
SIDE_EFFECT_FAILURES_TOTAL = Counter(
    "stockly_side_effect_failures_total",
    "Total number of best-effort notifications that failed, grouped by kind.",
    ["kind"],
)

ORDER_UPSERTS_TOTAL.labels(result="created").inc(0)
ORDER_UPSERTS_TOTAL.labels(result="updated").inc(0)
ORDER_UPSERTS_TOTAL.labels(result="rejected").inc(0)
ORDER_UPSERTS_TOTAL.labels(result="error").inc(0)
ORDER_ITEMS_SKIPPED_TOTAL.inc(0)
DUPLICATE_ORDERS_REMOVED_TOTAL.inc(0)
SUGGESTION_QUERY_FALLBACKS_TOTAL.labels(stage="primary").inc(0)
SUGGESTION_QUERY_FALLBACKS_TOTAL.labels(stage="fallback").inc(0)
SUGGESTIONS_SERVED_TOTAL.inc(0)
SIDE_EFFECT_FAILURES_TOTAL.labels(kind="email").inc(0)
SIDE_EFFECT_FAILURES_TOTAL.labels(kind="messaging").inc(0)
