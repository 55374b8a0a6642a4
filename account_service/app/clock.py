"""계정 정산에 사용하는 시간 소스.

일 단위 비용 정산, 출석 체크 날짜, off 기간 계산은 모두 설정된 타임존의
"로컬 자정"을 기준으로 한다. 서비스는 벽시계를 직접 읽지 않고 Clock 을 주입받는다.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo


class Clock:
    """벽시계 기반 기본 Clock 구현."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def to_local(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(self.tz)

    def local_date(self, value: datetime) -> date:
        return self.to_local(value).date()

    def midnight_of(self, value: datetime) -> datetime:
        """value 가 속한 로컬 날짜의 자정."""
        return self.midnight_of_date(self.local_date(value))

    def midnight_of_date(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def today_midnight(self) -> datetime:
        return self.midnight_of(self.now())

    def today(self) -> str:
        """오늘 날짜 문자열 (YYYY-MM-DD)."""
        return self.local_date(self.now()).isoformat()

    def days_between(self, start: datetime, end: datetime) -> int:
        """start 와 end 사이에 지난 로컬 달력 일수.

        24시간 단위 나눗셈 대신 날짜 차이를 사용하므로 DST 전환일에도
        하루가 사라지거나 중복되지 않는다.
        """
        return (self.local_date(end) - self.local_date(start)).days

    def add_days(self, midnight: datetime, days: int) -> datetime:
        """로컬 자정에서 days 일 뒤의 로컬 자정."""
        return self.midnight_of_date(self.local_date(midnight) + timedelta(days=days))
