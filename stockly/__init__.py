"""Stock ordering service: suppliers, order padding, order book and purchasing."""
