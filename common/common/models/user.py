from __future__ import annotations

from pydantic import BaseModel, field_validator


class Identity(BaseModel):
    """Gateway 가 인증을 마친 뒤 요청 헤더로 전달하는 최소 신원 정보.

    - handle 은 users(identity/profile) 컬렉션과 accounts 컬렉션이 공유하는 불변 식별자다.
    - name 은 표시용 이름이며, 전달되지 않으면 handle 을 그대로 사용한다.
    """

    handle: str
    name: str

    @field_validator("handle")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()
