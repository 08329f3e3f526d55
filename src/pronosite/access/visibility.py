"""Visibility gate - who may see an item, and who may mutate anything."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Protocol, TypeVar

from pronosite.errors import AuthorizationError, ValidationError
from pronosite.models.pick import Visibility


class ViewerTier(str, Enum):
    """Viewer classification supplied by the auth collaborator."""

    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    VIP = "vip"
    ADMIN = "admin"


RESTRICTED_TIERS = frozenset({ViewerTier.VIP, ViewerTier.ADMIN})


class Gated(Protocol):
    @property
    def visibility(self) -> Visibility: ...


T = TypeVar("T", bound=Gated)


def parse_tier(value: str | ViewerTier | None) -> ViewerTier:
    """Missing tier means anonymous. Unknown names are rejected, never downgraded."""
    if value is None or value == "":
        return ViewerTier.ANONYMOUS
    try:
        return ViewerTier(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"unknown viewer tier: {value!r}") from None


def can_view(item: Gated, tier: ViewerTier) -> bool:
    if item.visibility == Visibility.PUBLIC:
        return True
    return tier in RESTRICTED_TIERS


def visible(items: Iterable[T], tier: ViewerTier) -> list[T]:
    """Keep only the items this tier may see, preserving order."""
    return [item for item in items if can_view(item, tier)]


def require_admin(tier: ViewerTier, action: str) -> None:
    if tier != ViewerTier.ADMIN:
        raise AuthorizationError(f"{action} requires admin, viewer is {tier.value}")


def require_restricted_access(tier: ViewerTier, what: str) -> None:
    if tier not in RESTRICTED_TIERS:
        raise AuthorizationError(f"{what} is reserved to VIP members, viewer is {tier.value}")
