"""포인트 계정 API 라우터.

Gateway 가 인증 후 X-User-Handle / X-User-Name 헤더를 붙여 호출한다.
/access 는 보호 리소스 게이트용 내부 API 로, 미인증이어도 판정 결과를 반환한다.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from common.models.user import Identity

from ..deps import get_optional_identity, require_identity
from ..schemas.account import (
    AccessDecisionResponse,
    AccountStatusResponse,
    CheckInResponse,
    RedeemRequest,
    RedeemResponse,
    ToggleRequest,
    ToggleResponse,
)
from ..schemas.common import ErrorResponse
from ...models.account import AccessDenyReason
from ...services.account_service import AccountService, get_account_service
from ...services.redeem_service import RedeemService, get_redeem_service


router = APIRouter(
    prefix="/account",
    tags=["account"],
    responses={
        403: {"model": ErrorResponse, "description": "인증 정보 없음"},
        500: {"model": ErrorResponse, "description": "내부 오류"},
    },
)


@router.get("/status", summary="계정 상태 조회 (일일 비용 정산 포함)")
def get_status(
    identity: Annotated[Identity, Depends(require_identity)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> AccountStatusResponse:
    status = service.get_status(identity.handle, identity.name)
    return AccountStatusResponse.from_domain(status)


@router.post(
    "/checkin",
    summary="출석 체크 (하루 한 번 보너스 지급)",
    responses={409: {"model": ErrorResponse, "description": "오늘 이미 출석함"}},
)
def check_in(
    identity: Annotated[Identity, Depends(require_identity)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> CheckInResponse:
    result = service.check_in(identity.handle)
    return CheckInResponse.from_domain(result)


@router.post(
    "/toggle",
    summary="접근 on/off 전환",
    responses={
        400: {"model": ErrorResponse, "description": "accessOn 누락 또는 boolean 아님"},
        402: {"model": ErrorResponse, "description": "활성화 비용 부족"},
    },
)
def toggle_access(
    body: ToggleRequest,
    identity: Annotated[Identity, Depends(require_identity)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> ToggleResponse:
    result = service.toggle_access(identity.handle, body.access_on)
    return ToggleResponse.from_domain(result)


@router.post(
    "/redeem",
    summary="교환 코드 사용",
    responses={
        400: {"model": ErrorResponse, "description": "code 누락 또는 빈 문자열"},
        404: {"model": ErrorResponse, "description": "존재하지 않는 코드"},
        409: {"model": ErrorResponse, "description": "이미 사용된 코드"},
    },
)
def redeem_code(
    body: RedeemRequest,
    identity: Annotated[Identity, Depends(require_identity)],
    service: Annotated[RedeemService, Depends(get_redeem_service)],
) -> RedeemResponse:
    result = service.redeem(identity.handle, body.code)
    return RedeemResponse.from_domain(result)


@router.get(
    "/access",
    summary="보호 리소스 접근 판정 (내부용)",
    response_model_exclude_none=True,
)
def evaluate_access(
    identity: Annotated[Identity | None, Depends(get_optional_identity)],
    service: Annotated[AccountService, Depends(get_account_service)],
) -> AccessDecisionResponse:
    if identity is None:
        return AccessDecisionResponse(
            allowed=False, reason=AccessDenyReason.NOT_LOGGED_IN
        )
    decision = service.evaluate_access(identity.handle)
    return AccessDecisionResponse.from_domain(decision)
