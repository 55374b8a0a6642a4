from __future__ import annotations

from pydantic import BaseModel, ConfigDict, StrictBool, field_validator
from pydantic.alias_generators import to_camel

from ...models.account import (
    AccessDecision,
    AccessDenyReason,
    AccountStatus,
    CheckInResult,
    RedeemResult,
    ToggleResult,
)


class CamelModel(BaseModel):
    """브라우저 클라이언트와 맞추기 위해 JSON 필드명을 camelCase 로 노출한다."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AccountStatusResponse(CamelModel):
    handle: str
    name: str
    points: float
    access_on: bool
    off_days: int
    can_check_in_today: bool
    purged: bool

    @classmethod
    def from_domain(cls, status: AccountStatus) -> "AccountStatusResponse":
        return cls(
            handle=status.handle,
            name=status.name,
            points=status.points,
            access_on=status.access_on,
            off_days=status.off_days,
            can_check_in_today=status.can_check_in_today,
            purged=status.purged,
        )


class CheckInResponse(CamelModel):
    points: float
    last_check_in_date: str

    @classmethod
    def from_domain(cls, result: CheckInResult) -> "CheckInResponse":
        return cls(points=result.points, last_check_in_date=result.last_check_in_date)


class ToggleRequest(CamelModel):
    # "true" / 1 같은 값은 거부하고 JSON boolean 만 허용한다.
    access_on: StrictBool


class ToggleResponse(CamelModel):
    access_on: bool
    points: float

    @classmethod
    def from_domain(cls, result: ToggleResult) -> "ToggleResponse":
        return cls(access_on=result.access_on, points=result.points)


class RedeemRequest(CamelModel):
    code: str

    @field_validator("code")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("교환 코드를 입력해 주세요.")
        return value


class RedeemResponse(CamelModel):
    success: bool = True
    points: float
    added_points: float
    message: str

    @classmethod
    def from_domain(cls, result: RedeemResult) -> "RedeemResponse":
        return cls(
            points=result.points,
            added_points=result.added_points,
            message=f"{result.added_points:g} 포인트가 적립되었습니다.",
        )


class AccessDecisionResponse(CamelModel):
    allowed: bool
    reason: AccessDenyReason | None = None

    @classmethod
    def from_domain(cls, decision: AccessDecision) -> "AccessDecisionResponse":
        return cls(allowed=decision.allowed, reason=decision.reason)
