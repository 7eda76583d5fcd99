"""Receipt access policies.

Receipts are shared by id: by default any authenticated subject that knows
a receipt's id may read or update it.  The decision is isolated here so a
stricter policy can be switched on with ``ACCESS_POLICY=creator_only``.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Protocol, Type


class AccessPolicy(Protocol):
    def may_access(self, subject: str, document: Mapping[str, Any]) -> bool:
        ...


class AllowAllPolicy:
    """Any authenticated subject may access any receipt."""

    name = "allow_all"

    def may_access(self, subject: str, document: Mapping[str, Any]) -> bool:
        return True


class CreatorOnlyPolicy:
    """Only the subject recorded in ``processingMetadata.userId`` may access.

    Documents without a recorded creator stay accessible to everyone.
    """

    name = "creator_only"

    def may_access(self, subject: str, document: Mapping[str, Any]) -> bool:
        meta = document.get("processingMetadata") or {}
        owner = meta.get("userId") if isinstance(meta, Mapping) else None
        return not owner or owner == subject


POLICIES: Dict[str, Type] = {
    AllowAllPolicy.name: AllowAllPolicy,
    CreatorOnlyPolicy.name: CreatorOnlyPolicy,
}


def build_access_policy(name: str) -> AccessPolicy:
    try:
        return POLICIES[(name or AllowAllPolicy.name).strip().lower()]()
    except KeyError:
        raise ValueError(f"Unknown ACCESS_POLICY {name!r}; expected one of {sorted(POLICIES)}") from None


__all__ = ["AccessPolicy", "AllowAllPolicy", "CreatorOnlyPolicy", "build_access_policy"]
