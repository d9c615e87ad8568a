# backend/studio/services/tiers.py
"""
Access tiers and landing pages.

Clients added by the trainer get everything. Clients who signed themselves up
(email, Google or Apple) need a premium subscription for the premium features.
"""

from dataclasses import dataclass
from typing import Optional

from ..models.tables import Clients as DBClients

PREMIUM_FEATURES = frozenset({"nutrition", "buddies"})
SELF_SIGNUP_SOURCES = frozenset({"self_signup", "google", "apple"})

FREE_RANDOMISER_DURATIONS = (5, 10)
FREE_RANDOMISER_WEEKLY_LIMIT = 2
FREE_HABIT_LIMIT = 1


@dataclass(frozen=True)
class Tier:
    tier: str
    subscription_status: Optional[str]
    is_premium: bool

    def can_access(self, feature: str) -> bool:
        return self.is_premium or feature not in PREMIUM_FEATURES


def is_self_signup(client: Optional[DBClients]) -> bool:
    return client is not None and client.signup_source in SELF_SIGNUP_SOURCES


def build_tier(client: Optional[DBClients]) -> Tier:
    if client is None:
        return Tier(tier="free", subscription_status=None, is_premium=False)

    tier = client.tier or "free"
    admin_granted = not is_self_signup(client)
    return Tier(
        tier=tier,
        subscription_status=client.subscription_status,
        is_premium=tier == "premium" or admin_granted,
    )


def client_home_path(client: Optional[DBClients]) -> str:
    if is_self_signup(client) and not client.onboarding_complete:
        return "/onboarding"

    client_type = client.client_type if client else None
    if client_type == "core_buddy":
        return "/client/core-buddy"
    if client_type in ("circuit_vip", "circuit_dropin"):
        return "/client/circuit"
    return "/client"
