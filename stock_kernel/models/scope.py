"""Helpers for scope (tenant) keyed uniqueness."""

from uuid import UUID

GLOBAL_SCOPE_KEY = ""


def scope_key_for(scope_id: UUID | None) -> str:
    """
    Non-null key standing in for a nullable scope_id in unique constraints.

    SQL treats NULLs as distinct, so a unique constraint over a nullable
    scope_id would admit duplicate global codes.
    """
    return GLOBAL_SCOPE_KEY if scope_id is None else str(scope_id)
