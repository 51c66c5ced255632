"""
Realtime event names published to clients.

Clients switch on these strings, so they are part of the public contract.
"""

NEW_ORDER = "new-order"
ORDER_STATUS_UPDATED = "order-status-updated"
NEW_MESSAGE = "new-message"
PAYMENT_RECEIVED = "payment-received"
PAYMENT_RELEASED = "payment-released"
ACCOUNT_READY = "account-ready"

# Length of the message preview sent to the non-sending party
MESSAGE_PREVIEW_LENGTH = 30
