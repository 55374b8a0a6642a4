"""포인트 계정 도메인 모델.

유저당 하나의 AccountRecord 를 가지며, 포인트 잔액으로 보호 리소스 접근 여부를 결정한다.
- 접근(on) 상태에서는 하루마다 일일 비용이 차감된다.
- off 상태로 일정 기간 이상 유지되면 유저 데이터가 파기(purge)되고 계정이 초기화된다.
"""

from __future__ import annotations

import math
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator


def round_half(value: float) -> float:
    """가장 가까운 0.5 단위로 반올림한다 (x.25 / x.75 같은 정확한 절반은 올림)."""
    return math.floor(value * 2 + 0.5) / 2


class AccountRecord(BaseModel):
    """유저 포인트 계정 레코드."""

    handle: str
    points: float = Field(ge=0)
    access_on: bool
    # 비용 정산이 끝난 마지막 로컬 자정
    last_cost_applied_at: datetime | None = None
    # 마지막으로 출석 보너스를 받은 날짜 (YYYY-MM-DD), 없으면 빈 문자열
    last_check_in_date: str = ""
    # access_on=False 일 때만 값이 있다 (off 시작 시각, purge 후에는 재무장 시각)
    access_off_since: datetime | None = None
    created_at: datetime
    updated_at: datetime
    # optimistic concurrency 용 버전 (저장 성공 시마다 1 증가)
    version: int = 0

    @model_validator(mode="after")
    def _validate_invariants(self) -> "AccountRecord":
        if self.points * 2 != int(self.points * 2):
            raise ValueError("points must be a multiple of 0.5")
        if self.access_on and self.access_off_since is not None:
            raise ValueError("access_off_since must be null while access is on")
        if not self.access_on and self.access_off_since is None:
            raise ValueError("access_off_since is required while access is off")
        return self


class AccessDenyReason(StrEnum):
    NOT_LOGGED_IN = "NOT_LOGGED_IN"
    OFF = "OFF"
    NO_POINTS = "NO_POINTS"


class AccessDecision(BaseModel):
    """보호 리소스 접근 게이트 판정 결과."""

    allowed: bool
    reason: AccessDenyReason | None = None


class AccountStatus(BaseModel):
    """정산 이후의 계정 상태 요약."""

    handle: str
    name: str
    points: float
    access_on: bool
    off_days: int
    can_check_in_today: bool
    # 이번 호출에서 purge 가 일어났는지 여부 (호출 단위 일회성 신호)
    purged: bool


class CheckInResult(BaseModel):
    points: float
    last_check_in_date: str


class ToggleResult(BaseModel):
    access_on: bool
    points: float


class RedeemResult(BaseModel):
    points: float
    added_points: float
