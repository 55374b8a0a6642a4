"""일일 비용 정산.

마지막 정산 자정(last_cost_applied_at) 이후 지난 일수만큼 일일 비용을 차감하고
정산 기준 시각을 오늘 자정까지 전진시킨다. 같은 날 여러 번 호출해도 결과는 같다.
"""

from __future__ import annotations

from ..clock import Clock
from ..models.account import AccountRecord, round_half


def apply_daily_cost(record: AccountRecord, clock: Clock, daily_cost: float) -> int:
    """record 에 밀린 일일 비용을 반영하고 정산된 일수를 반환한다.

    - 접근 off 상태에서는 비용이 0 이지만 정산 기준 시각은 똑같이 전진한다.
    - 잔액은 0 아래로 내려가지 않는다.
    """

    today_midnight = clock.today_midnight()
    applied_from = record.last_cost_applied_at or clock.midnight_of(record.created_at)

    if applied_from > today_midnight:
        # 시계가 뒤로 간 경우: 기준 시각만 오늘 자정으로 되돌린다.
        record.last_cost_applied_at = today_midnight
        return 0

    days = clock.days_between(applied_from, today_midnight)
    if days <= 0:
        return 0

    rate = daily_cost if record.access_on else 0.0
    record.points = max(0.0, round_half(record.points - days * rate))
    record.last_cost_applied_at = clock.add_days(applied_from, days)
    return days
