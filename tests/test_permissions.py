"""Tests for publish/subscribe scope construction."""
from __future__ import annotations

import pytest

from messaging_auth.permissions import (
    Restricted,
    Unrestricted,
    publish_patterns,
    scope_to_permissions,
)


class TestRestricted:
    def test_publish_limited_to_own_namespace_and_inbox(self):
        perms = scope_to_permissions(Restricted("0xAAA"))
        assert perms["publish"]["allow"] == ["*.0xAAA.>", "_INBOX.>"]

    def test_subscribe_everything(self):
        perms = scope_to_permissions(Restricted("0xAAA"))
        assert perms["subscribe"]["allow"] == [">"]


class TestUnrestricted:
    def test_publish_and_subscribe_everything(self):
        assert scope_to_permissions(Unrestricted()) == {
            "publish": {"allow": [">"]},
            "subscribe": {"allow": [">"]},
        }


def test_scopes_are_values():
    assert Restricted("0xAAA") == Restricted("0xAAA")
    assert Restricted("0xAAA") != Restricted("0xaaa")
    assert Unrestricted() == Unrestricted()


def test_unknown_scope_rejected():
    with pytest.raises(TypeError):
        publish_patterns("admin")
