"""URL constants for credits domain."""

CREDITS_BASE = "/api/credits"
CREDITS_CONSUME = f"{CREDITS_BASE}/consume"
CREDITS_TRANSACTIONS = f"{CREDITS_BASE}/transactions"
