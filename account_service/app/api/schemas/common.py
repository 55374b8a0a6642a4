"""공통 스키마 정의."""

from __future__ import annotations

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """비즈니스/검증/내부 오류 공통 응답 스키마.

    - code: 기계 판독용 오류 코드 (예: already_checked_in)
    - message: 유저에게 그대로 보여줄 수 있는 메시지
    """

    code: str
    message: str
