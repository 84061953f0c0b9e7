"""
tests.test_rbac

Coarse permission gate.
"""

from __future__ import annotations

import pytest

from tenant_guard.auth import rbac
from tenant_guard.auth.rbac import has_permission, require_permission
from tenant_guard.errors import AuthorizationDenied


def test_any_of_required_permissions_grants(make_principal) -> None:
    p = make_principal(permissions={"create_matter", "edit_document"})
    assert has_permission(p, ["create_matter"])
    assert has_permission(p, ["sign_document", "edit_document"])
    assert not has_permission(p, ["sign_document"])


def test_empty_requirement_grants_nothing(make_principal) -> None:
    p = make_principal(permissions={"create_matter"})
    assert not has_permission(p, [])


def test_super_admin_has_no_implicit_permissions(super_admin) -> None:
    assert not has_permission(super_admin, ["create_matter"])


def test_require_permission_raises_with_readable_reason(make_principal, capture_log) -> None:
    cap = capture_log(rbac)
    p = make_principal(role="JUNIOR_ASSOCIATE", permissions={"draft_document"})
    with pytest.raises(AuthorizationDenied) as excinfo:
        require_permission(p, {"close_matter"})
    assert "JUNIOR_ASSOCIATE" in excinfo.value.reason
    assert "close_matter" in excinfo.value.reason
    assert cap.calls[0].method_name == "warning"
    assert cap.calls[0].kwargs["event"] == "rbac_denied"


def test_require_permission_returns_principal(make_principal) -> None:
    p = make_principal(permissions={"close_matter"})
    assert require_permission(p, {"close_matter"}) is p
