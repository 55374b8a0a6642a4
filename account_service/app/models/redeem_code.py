from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


def normalize_code(code: str) -> str:
    """교환 코드를 대소문자 구분 없는 저장 키로 정규화한다."""
    return code.strip().upper()


class RedeemCode(BaseModel):
    """일회용 포인트 교환 코드 도메인 모델.

    - code 는 정규화된(대문자) 키다.
    - used 는 False -> True 로 한 번만 전이하며 되돌아가지 않는다.
    """

    code: str
    points: float = Field(ge=0)
    used: bool = False
    used_by: str | None = None
    used_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
