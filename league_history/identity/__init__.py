"""
Owner identity package.

Standardizes upstream owner names so a manager keeps one name across seasons.

Modules:
    owner_names: Ordered owner-name resolution with hidden-owner handling
"""

from league_history.identity.owner_names import (
    HIDDEN_OWNER,
    OwnerNameResolver,
    OwnerResolution,
    hidden_owner_key,
)

__all__ = [
    "HIDDEN_OWNER",
    "OwnerNameResolver",
    "OwnerResolution",
    "hidden_owner_key",
]
