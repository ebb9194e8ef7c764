"""
Billing & Entitlement Module

Decides whether a user may send one more chat message, and against which
account the message is charged.

Architecture:
    - billing.pricing: Static (tier, billing cycle) -> (quota, price) table
    - billing.models: Database models for usage ledgers and subscription bundles
    - billing.stores: Persistence protocols + in-memory implementations
    - billing.repositories: SQLAlchemy implementations of the stores
    - billing.ledger: Free-tier ledger lifecycle (lazy creation, monthly reset)
    - billing.subscriptions: Purchase, listing and cancellation of bundles
    - billing.resolver: Entitlement resolution (free first, newest bundle next)
    - billing.recording: Commits one unit of usage to the selected account
    - billing.renewal: Auto-renewal sweep with a pluggable payment outcome
    - billing.dashboard: Read-only remaining-quota projection
"""
