# Order-book orders that may still be replaced by a new submission.
EDITABLE_ORDER_STATUSES = ("draft", "pending", "confirmed")

# Purchase orders whose header and lines may still be changed.
EDITABLE_PO_STATUSES = ("draft", "pending_approval")

# Allowed purchase order status changes keyed by current status.
PO_STATUS_ACTIONS = {
    "draft": ("sent", "pending_approval"),
    "pending_approval": ("approved", "draft"),
    "approved": ("sent",),
    "sent": ("acknowledged",),
    "acknowledged": (),
    "partially_received": (),
    "received": (),
}

USER_ROLES = ("staff", "manager", "admin")
