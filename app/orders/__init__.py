"""
Orders app: service catalogue entries, orders and order messaging.

Related apps:
    - payments: payment for an order, release after completion
    - notifications: new-order / order-status-updated / new-message events
"""
