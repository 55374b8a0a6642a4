"""인증 관련 FastAPI 의존성.

인증(OAuth, 세션)은 Gateway 가 담당하며, 인증된 요청에만 아래 헤더를 붙여 전달한다.
- X-User-Handle: 유저 식별자 (필수)
- X-User-Name: 표시 이름 (선택)
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header

from common.models.user import Identity

from ..exceptions import NotAuthenticatedError


def get_optional_identity(
    x_user_handle: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
) -> Identity | None:
    """인증 헤더가 있으면 Identity, 없으면 None."""
    if not x_user_handle or not x_user_handle.strip():
        return None
    handle = x_user_handle.strip()
    return Identity(handle=handle, name=(x_user_name or "").strip() or handle)


def require_identity(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
) -> Identity:
    """인증이 필요한 라우트용. 신원이 없으면 NotAuthenticatedError (403)."""
    if identity is None:
        raise NotAuthenticatedError()
    return identity
