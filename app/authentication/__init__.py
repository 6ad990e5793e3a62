"""
Authentication application.

Provides the email-based User model that owns credit accounts, and JWT token
endpoints (djangorestframework-simplejwt) used to authenticate API callers.

Usage:
    from authentication.models import User
"""
