from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from account_service.app.models.account import AccountRecord, round_half
from account_service.app.services.settlement import apply_daily_cost
from account_service.tests.fakes import AccountServiceFixture, ManualClock


@pytest.mark.parametrize(
    ("value", "expected"),
    [(2.2, 2.0), (2.25, 2.5), (2.74, 2.5), (2.75, 3.0), (19.5, 19.5), (0.0, 0.0)],
)
def test_round_half_rounds_to_nearest_half(value: float, expected: float) -> None:
    assert round_half(value) == expected


def test_backfills_elapsed_days_while_access_is_on(
    fixture: AccountServiceFixture,
) -> None:
    # given: 오늘 생성된 계정 (20 포인트, 접근 on)
    fixture.service.get_status("alice", "Alice")
    day0 = fixture.clock.today_midnight()

    # when: 5일 뒤 정산
    fixture.clock.advance(days=5)
    status = fixture.service.get_status("alice", "Alice")

    # then
    assert status.points == 15.0
    assert fixture.stored().last_cost_applied_at == day0 + timedelta(days=5)


def test_settlement_is_idempotent_within_the_same_day(
    fixture: AccountServiceFixture,
) -> None:
    fixture.service.get_status("alice", "Alice")
    fixture.clock.advance(days=2)
    fixture.service.get_status("alice", "Alice")
    saved_after_first = fixture.account_repo.save_calls
    applied_at = fixture.stored().last_cost_applied_at

    # when: 같은 날 몇 시간 뒤 다시 정산
    fixture.clock.advance(hours=10)
    status = fixture.service.get_status("alice", "Alice")

    # then: 잔액도 기준 시각도 그대로이고 저장도 일어나지 않는다.
    assert status.points == 18.0
    assert fixture.stored().last_cost_applied_at == applied_at
    assert fixture.account_repo.save_calls == saved_after_first


def test_no_cost_accrues_while_access_is_off(fixture: AccountServiceFixture) -> None:
    # given: 10 포인트로 접근을 끈 계정
    fixture.seed_account(points=10.0)
    fixture.service.toggle_access("alice", False)

    # when: 10일 뒤 (purge 기준 미만)
    fixture.clock.advance(days=10)
    status = fixture.service.get_status("alice", "Alice")

    # then
    assert status.points == 10.0
    assert status.access_on is False
    assert status.off_days == 10
    assert status.purged is False


def test_balance_never_goes_negative(fixture: AccountServiceFixture) -> None:
    fixture.seed_account(points=2.5)

    fixture.clock.advance(days=7)
    status = fixture.service.get_status("alice", "Alice")

    assert status.points == 0.0


def test_future_settlement_marker_is_clamped_to_today() -> None:
    clock = ManualClock()
    now = clock.now()
    tomorrow = clock.today_midnight() + timedelta(days=1)
    record = AccountRecord(
        handle="alice",
        points=20.0,
        access_on=True,
        last_cost_applied_at=tomorrow,
        created_at=now,
        updated_at=now,
    )

    days = apply_daily_cost(record, clock, daily_cost=1.0)

    assert days == 0
    assert record.points == 20.0
    assert record.last_cost_applied_at == clock.today_midnight()


def test_missing_settlement_marker_falls_back_to_creation_midnight() -> None:
    clock = ManualClock()
    created_at = clock.now() - timedelta(days=3)
    record = AccountRecord(
        handle="alice",
        points=20.0,
        access_on=True,
        last_cost_applied_at=None,
        created_at=created_at,
        updated_at=created_at,
    )

    days = apply_daily_cost(record, clock, daily_cost=1.0)

    assert days == 3
    assert record.points == 17.0
    assert record.last_cost_applied_at == clock.today_midnight()


def test_daylight_saving_switch_counts_as_one_calendar_day() -> None:
    # 2025-03-30 유럽 서머타임 시작일 (23시간짜리 하루)
    berlin = ZoneInfo("Europe/Berlin")
    clock = ManualClock(
        start=datetime(2025, 3, 29, 12, 0, tzinfo=berlin).astimezone(timezone.utc),
        tz=berlin,
    )
    now = clock.now()
    record = AccountRecord(
        handle="alice",
        points=20.0,
        access_on=True,
        last_cost_applied_at=clock.today_midnight(),
        created_at=now,
        updated_at=now,
    )

    clock.advance(days=1)
    days = apply_daily_cost(record, clock, daily_cost=1.0)

    assert days == 1
    assert record.points == 19.0
    assert record.last_cost_applied_at == datetime(2025, 3, 30, tzinfo=berlin)
