"""
Credits app: prepaid credit balances bought with Stripe.

This app handles:
- Lazy credit accounts with a welcome bonus
- The transaction ledger (single writer of balances)
- Checkout sessions for credit packages
- Stripe webhook settlement (exactly-once crediting)
- Balance/history queries and feature-usage debits

Related apps:
    - authentication: User model owning each account
    - core: Base models, services and exceptions

Usage:
    from credits.services import AccountStore, UsageService

    AccountStore.get_balance(user.pk)
    UsageService.debit_for_usage(user.pk, amount=1, feature_ref="face_swap")
"""
