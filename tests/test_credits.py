from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from zipship.data.db import get_session
from zipship.data.models import UNLIMITED_DEPLOYS, Purchase
from zipship.services.credits import (
    MAX_TEST_GRANT,
    AuthorizationPolicy,
    create_purchase,
    get_active_purchases,
    get_user_stats,
    grant_test_credits,
    has_remaining_credit,
    select_purchase_for_deploy,
)
from zipship.services.users import get_or_create_user

pytestmark = pytest.mark.usefixtures("tmp_db")


def test_new_user_has_no_credit() -> None:
    user_id = get_or_create_user("alice")

    assert get_user_stats(user_id) == {
        "total_deploys": 0,
        "remaining_deploys": 0,
        "has_unlimited": False,
    }
    assert has_remaining_credit(user_id) is False


def test_remaining_credit_sums_active_grants() -> None:
    user_id = get_or_create_user("alice")
    create_purchase(user_id, plan_type="starter", deploys_included=3)
    create_purchase(user_id, plan_type="pro", deploys_included=5)

    stats = get_user_stats(user_id)

    assert stats["remaining_deploys"] == 8
    assert stats["has_unlimited"] is False
    assert has_remaining_credit(user_id) is True


def test_expired_and_inactive_grants_are_ignored() -> None:
    user_id = get_or_create_user("alice")
    create_purchase(
        user_id,
        plan_type="starter",
        deploys_included=3,
        expires_at=datetime.now(UTC) - timedelta(days=1),
    )
    inactive_id = create_purchase(user_id, plan_type="starter", deploys_included=2)
    with get_session() as session:
        session.get(Purchase, inactive_id).is_active = False
    create_purchase(
        user_id,
        plan_type="pro",
        deploys_included=4,
        expires_at=datetime.now(UTC) + timedelta(days=30),
    )

    assert get_user_stats(user_id)["remaining_deploys"] == 4


def test_unlimited_grant() -> None:
    user_id = get_or_create_user("alice")
    create_purchase(user_id, plan_type="starter", deploys_included=1)
    unlimited_id = create_purchase(
        user_id, plan_type="unlimited", deploys_included=UNLIMITED_DEPLOYS
    )

    stats = get_user_stats(user_id)
    assert stats["has_unlimited"] is True
    assert stats["remaining_deploys"] == UNLIMITED_DEPLOYS

    with get_session() as session:
        assert select_purchase_for_deploy(session, user_id).id == unlimited_id


def test_fifo_selection_skips_exhausted_grants() -> None:
    user_id = get_or_create_user("alice")
    first = create_purchase(user_id, plan_type="starter", deploys_included=1)
    second = create_purchase(user_id, plan_type="starter", deploys_included=2)
    with get_session() as session:
        session.get(Purchase, first).deploys_used = 1

    with get_session() as session:
        assert [p.id for p in get_active_purchases(session, user_id)] == [second]
        assert select_purchase_for_deploy(session, user_id).id == second


def test_grants_are_per_user() -> None:
    alice = get_or_create_user("alice")
    bob = get_or_create_user("bob")
    create_purchase(alice, plan_type="starter", deploys_included=2)

    assert has_remaining_credit(bob) is False


@pytest.mark.parametrize(("requested", "granted"), [(5, 5), (50, MAX_TEST_GRANT), (0, 1)])
def test_grant_test_credits_is_clamped(requested: int, granted: int) -> None:
    user_id = get_or_create_user("alice")

    assert grant_test_credits(user_id, requested) == granted
    assert get_user_stats(user_id)["remaining_deploys"] == granted


def test_authorization_policy_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ZIPSHIP_PRIVILEGED_USERS", "Admin, ops ,")

    policy = AuthorizationPolicy()

    assert policy.is_privileged("admin")
    assert policy.is_privileged("OPS")
    assert not policy.is_privileged("alice")
    assert not policy.is_privileged("")


def test_authorization_policy_defaults_to_nobody(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ZIPSHIP_PRIVILEGED_USERS", raising=False)

    assert AuthorizationPolicy().privileged == set()
    assert AuthorizationPolicy({"root"}).is_privileged("root")
