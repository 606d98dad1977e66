"""
messaging_auth/permissions.py

Publish/subscribe scopes baked into vended tokens.

Subjects are namespaced as "to.from.subject", so a restricted holder may only
publish where the second token is its own address, plus reply inboxes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Union

ALL_SUBJECTS = ">"
REPLY_INBOX = "_INBOX.>"


@dataclass(frozen=True)
class Restricted:
    identity: str


@dataclass(frozen=True)
class Unrestricted:
    pass


PermissionScope = Union[Restricted, Unrestricted]


def publish_patterns(scope: PermissionScope) -> List[str]:
    if isinstance(scope, Restricted):
        return [f"*.{scope.identity}.>", REPLY_INBOX]
    if isinstance(scope, Unrestricted):
        return [ALL_SUBJECTS]
    raise TypeError(f"unknown permission scope: {scope!r}")


def scope_to_permissions(scope: PermissionScope) -> Dict[str, Any]:
    """Map a scope to the permissions object the token issuer embeds."""
    return {
        "publish": {"allow": publish_patterns(scope)},
        "subscribe": {"allow": [ALL_SUBJECTS]},
    }
