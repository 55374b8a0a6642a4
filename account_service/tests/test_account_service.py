from __future__ import annotations

import random
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from account_service.app.config import LedgerConfig
from account_service.app.exceptions import (
    AccountServiceError,
    AlreadyCheckedInError,
    InsufficientPointsError,
    InternalPersistenceError,
)
from account_service.app.models.account import AccessDenyReason, AccountRecord
from account_service.tests.fakes import AccountServiceFixture, build_fixture


def test_first_access_creates_default_account(fixture: AccountServiceFixture) -> None:
    status = fixture.service.get_status("alice", "Alice")

    assert status.handle == "alice"
    assert status.name == "Alice"
    assert status.points == 20.0
    assert status.access_on is True
    assert status.off_days == 0
    assert status.can_check_in_today is True
    assert status.purged is False

    stored = fixture.stored()
    assert stored.last_cost_applied_at == fixture.clock.today_midnight()
    assert stored.last_check_in_date == ""
    assert stored.access_off_since is None


def test_status_prefers_stored_profile_name(fixture: AccountServiceFixture) -> None:
    fixture.user_repo.names["alice"] = "Alice Kim"

    status = fixture.service.get_status("alice", "alice")

    assert status.name == "Alice Kim"


def test_status_falls_back_to_given_name(fixture: AccountServiceFixture) -> None:
    fixture.user_repo.names["bob"] = "Bob"

    status = fixture.service.get_status("alice", "Alice")

    assert status.name == "Alice"


def test_status_falls_back_when_profile_lookup_fails(
    fixture: AccountServiceFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    from pymongo.errors import AutoReconnect

    def unavailable(handle: str) -> str | None:
        raise AutoReconnect("users collection unavailable")

    monkeypatch.setattr(fixture.user_repo, "find_name_by_handle", unavailable)

    status = fixture.service.get_status("alice", "Alice")

    assert status.name == "Alice"
    assert status.points == 20.0


# -------- Check-in --------


def test_check_in_grants_bonus_once_per_day(fixture: AccountServiceFixture) -> None:
    # when
    result = fixture.service.check_in("alice")

    # then
    assert result.points == 25.0
    assert result.last_check_in_date == "2025-03-10"

    # 같은 날 두 번째 출석은 실패하고 상태는 그대로다.
    with pytest.raises(AlreadyCheckedInError):
        fixture.service.check_in("alice")
    assert fixture.stored().points == 25.0
    assert fixture.service.get_status("alice", "Alice").can_check_in_today is False


def test_check_in_settles_the_daily_cost_first(fixture: AccountServiceFixture) -> None:
    fixture.service.check_in("alice")

    fixture.clock.advance(days=1)
    result = fixture.service.check_in("alice")

    # 25 - 1(일일 비용) + 5
    assert result.points == 29.0
    assert result.last_check_in_date == "2025-03-11"


def test_rejected_check_in_still_persists_settlement(
    fixture: AccountServiceFixture,
) -> None:
    # given: 오늘 이미 출석했지만 비용 정산은 이틀 밀린 계정
    fixture.seed_account(
        points=10.0,
        last_check_in_date=fixture.clock.today(),
        last_cost_applied_at=fixture.clock.today_midnight() - timedelta(days=2),
    )

    with pytest.raises(AlreadyCheckedInError):
        fixture.service.check_in("alice")

    stored = fixture.stored()
    assert stored.points == 8.0
    assert stored.last_cost_applied_at == fixture.clock.today_midnight()


# -------- Toggle --------


def test_turning_off_is_free_and_starts_the_off_clock(
    fixture: AccountServiceFixture,
) -> None:
    result = fixture.service.toggle_access("alice", False)

    assert result.access_on is False
    assert result.points == 20.0
    assert fixture.stored().access_off_since == fixture.clock.now()


def test_toggle_to_current_state_is_a_no_op(fixture: AccountServiceFixture) -> None:
    fixture.seed_account(points=3.0)

    result = fixture.service.toggle_access("alice", True)

    assert result.access_on is True
    assert result.points == 3.0
    assert fixture.account_repo.save_calls == 0


def test_turning_on_requires_activation_fee(fixture: AccountServiceFixture) -> None:
    fixture.seed_account(points=0.5, access_on=False)
    before = fixture.stored().model_copy(deep=True)

    with pytest.raises(InsufficientPointsError):
        fixture.service.toggle_access("alice", True)

    assert fixture.stored() == before


def test_turning_on_charges_activation_fee(fixture: AccountServiceFixture) -> None:
    fixture.seed_account(points=1.0, access_on=False)

    result = fixture.service.toggle_access("alice", True)

    assert result.access_on is True
    assert result.points == 0.0
    stored = fixture.stored()
    assert stored.access_on is True
    assert stored.access_off_since is None


# -------- Access gate --------


def test_access_gate_allows_active_account_with_points(
    fixture: AccountServiceFixture,
) -> None:
    decision = fixture.service.evaluate_access("alice")

    assert decision.allowed is True
    assert decision.reason is None


def test_access_gate_denies_when_access_is_off(fixture: AccountServiceFixture) -> None:
    fixture.service.toggle_access("alice", False)

    decision = fixture.service.evaluate_access("alice")

    assert decision.allowed is False
    assert decision.reason == AccessDenyReason.OFF


def test_access_gate_denies_after_points_run_out(
    fixture: AccountServiceFixture,
) -> None:
    fixture.seed_account(points=2.0)

    fixture.clock.advance(days=2)
    decision = fixture.service.evaluate_access("alice")

    # 게이트 조회만으로도 정산 결과가 저장된다.
    assert decision.allowed is False
    assert decision.reason == AccessDenyReason.NO_POINTS
    assert fixture.stored().points == 0.0


# -------- Purge --------


def test_purge_after_thirty_days_off_resets_account_once(
    fixture: AccountServiceFixture,
) -> None:
    # given: 5 포인트로 오늘부터 off 인 계정
    fixture.seed_account(points=5.0, access_on=False, last_check_in_date="2025-03-10")

    # when: 29일 뒤에는 아직 purge 되지 않는다.
    fixture.clock.advance(days=29)
    assert fixture.service.get_status("alice", "Alice").purged is False

    # when: 30일째
    fixture.clock.advance(days=1)
    status = fixture.service.get_status("alice", "Alice")

    # then
    assert status.purged is True
    assert status.points == 0.0
    assert status.access_on is False
    assert status.off_days == 0
    stored = fixture.stored()
    assert stored.access_off_since == fixture.clock.today_midnight()
    assert stored.last_cost_applied_at == fixture.clock.today_midnight()
    assert stored.last_check_in_date == ""
    assert fixture.user_repo.deleted == ["alice"]
    assert fixture.data_store.deleted == ["alice"]

    # 다음 호출에서는 purged 신호가 다시 나오지 않는다.
    fixture.clock.advance(days=1)
    assert fixture.service.get_status("alice", "Alice").purged is False
    assert fixture.user_repo.deleted == ["alice"]


def test_purge_timer_rearms_for_accounts_that_stay_off(
    fixture: AccountServiceFixture,
) -> None:
    fixture.seed_account(points=5.0, access_on=False)
    fixture.clock.advance(days=30)
    assert fixture.service.get_status("alice", "Alice").purged is True

    # 재설정된 off 시작 시각(자정)으로부터 다시 30일이 지나면 또 purge 된다.
    fixture.clock.advance(days=29)
    assert fixture.service.get_status("alice", "Alice").purged is False
    fixture.clock.advance(days=1)
    assert fixture.service.get_status("alice", "Alice").purged is True
    assert fixture.user_repo.deleted == ["alice", "alice"]


def test_purge_reset_survives_deletion_failures(fixture: AccountServiceFixture) -> None:
    fixture.user_repo.fail = True
    fixture.data_store.fail = True
    fixture.seed_account(points=5.0, access_on=False)

    fixture.clock.advance(days=31)
    status = fixture.service.get_status("alice", "Alice")

    assert status.purged is True
    assert fixture.stored().points == 0.0


def test_purge_is_reported_to_the_operation_that_triggered_it(
    fixture: AccountServiceFixture,
) -> None:
    fixture.seed_account(points=5.0, access_on=False)
    fixture.clock.advance(days=30)

    # purge 를 일으킨 것은 게이트 조회이므로 이후 상태 조회는 purged=False 다.
    decision = fixture.service.evaluate_access("alice")
    status = fixture.service.get_status("alice", "Alice")

    assert decision.reason == AccessDenyReason.OFF
    assert status.purged is False
    assert status.points == 0.0


def test_reactivated_account_is_not_purged(fixture: AccountServiceFixture) -> None:
    fixture.seed_account(points=5.0, access_on=False)
    fixture.clock.advance(days=20)
    fixture.service.toggle_access("alice", True)

    fixture.clock.advance(days=15)
    status = fixture.service.get_status("alice", "Alice")

    assert status.purged is False
    assert status.access_on is True
    assert fixture.user_repo.deleted == []


# -------- Concurrency --------


def test_concurrent_write_between_load_and_save_is_not_lost(
    fixture: AccountServiceFixture,
) -> None:
    fixture.seed_account(points=20.0)

    def credit_from_another_request(records: dict[str, AccountRecord]) -> None:
        current = records["alice"]
        records["alice"] = current.model_copy(
            update={"points": current.points + 10, "version": current.version + 1}
        )

    fixture.account_repo.before_save = credit_from_another_request

    result = fixture.service.toggle_access("alice", False)

    assert result.points == 30.0
    stored = fixture.stored()
    assert stored.points == 30.0
    assert stored.access_on is False
    assert fixture.account_repo.save_calls == 2


def test_parallel_credits_on_one_account_are_all_applied() -> None:
    fixture = build_fixture()
    fixture.seed_account(points=20.0)
    fixture.account_repo.read_delay = 0.001

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda _: fixture.service.credit("alice", 0.5), range(16)))

    assert len(results) == 16
    assert fixture.stored().points == 28.0


def test_gives_up_after_retry_budget_is_exhausted() -> None:
    fixture = build_fixture(ledger=LedgerConfig(max_update_retries=1))
    fixture.seed_account(points=20.0)

    def bump_version(records: dict[str, AccountRecord]) -> None:
        current = records["alice"]
        records["alice"] = current.model_copy(update={"version": current.version + 1})

    fixture.account_repo.before_save = bump_version

    with pytest.raises(InternalPersistenceError):
        fixture.service.toggle_access("alice", False)


def test_persistence_failure_is_surfaced_as_internal_error(
    fixture: AccountServiceFixture,
) -> None:
    from pymongo.errors import ServerSelectionTimeoutError

    fixture.account_repo.fail_with = ServerSelectionTimeoutError("no servers")

    with pytest.raises(InternalPersistenceError):
        fixture.service.get_status("alice", "Alice")


# -------- Invariants --------


def test_invariants_hold_across_random_operations(
    fixture: AccountServiceFixture,
) -> None:
    rng = random.Random(20250310)
    for _ in range(300):
        fixture.clock.advance(hours=rng.choice([0, 1, 5, 13, 24, 24 * 7]))
        action = rng.choice(["status", "check_in", "on", "off", "credit", "gate"])
        try:
            if action == "status":
                fixture.service.get_status("alice", "Alice")
            elif action == "check_in":
                fixture.service.check_in("alice")
            elif action == "on":
                fixture.service.toggle_access("alice", True)
            elif action == "off":
                fixture.service.toggle_access("alice", False)
            elif action == "credit":
                fixture.service.credit("alice", rng.choice([0.5, 1.0, 2.5]))
            else:
                fixture.service.evaluate_access("alice")
        except (AlreadyCheckedInError, InsufficientPointsError):
            pass

        stored = fixture.stored()
        assert stored.points >= 0
        assert stored.points * 2 == int(stored.points * 2)
        assert (stored.access_off_since is None) == stored.access_on
        assert stored.last_cost_applied_at is not None
        assert stored.last_cost_applied_at <= fixture.clock.today_midnight()
        assert stored.last_check_in_date <= fixture.clock.today()


def test_business_errors_share_a_common_base() -> None:
    assert issubclass(AlreadyCheckedInError, AccountServiceError)
    assert issubclass(InsufficientPointsError, AccountServiceError)
