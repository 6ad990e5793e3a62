"""
Tests for the authentication app.

- test_managers.py: UserManager create_user / create_superuser
- test_views.py: JWT token obtain / refresh / verify endpoints
"""
