"""
Authentication application.

Holds the custom User model for the marketplace. Login, registration and
token issuance are handled by simplejwt and are not customised here; this
app only defines who a user is: their marketplace role and the connected
payout account a freelancer receives transfers on.

Usage:
    from authentication.models import User, UserRole
"""
