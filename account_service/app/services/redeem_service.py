"""교환 코드 서비스.

코드 사용 처리는 redeem_codes 컬렉션의 조건부 갱신(used=False -> True)으로 원자적으로
수행하며, 계정 레코드의 버전 관리와는 독립적이다. 코드 사용 처리에 성공한 요청만
계정 정산 후 포인트를 적립한다.
"""

from __future__ import annotations

import logging

from fastapi import Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from common.mongo.client import get_database

from ..clock import Clock
from ..exceptions import (
    CodeAlreadyUsedError,
    CodeNotFoundError,
    InternalPersistenceError,
)
from ..models.account import RedeemResult
from ..models.redeem_code import normalize_code
from ..repositories.interfaces import RedeemCodeRepositoryInterface
from ..repositories.redeem_code_repository import RedeemCodeRepository
from .account_service import AccountService, get_account_service, get_clock


logger = logging.getLogger(__name__)


class RedeemService:
    def __init__(
        self,
        redeem_repo: RedeemCodeRepositoryInterface,
        account_service: AccountService,
        clock: Clock,
    ) -> None:
        self._redeem_repo = redeem_repo
        self._account_service = account_service
        self._clock = clock

    def redeem(self, handle: str, code: str) -> RedeemResult:
        """코드를 사용 처리하고 코드의 포인트를 적립한다.

        Raises:
            CodeNotFoundError: 존재하지 않는 코드
            CodeAlreadyUsedError: 이미 사용된 코드 (동시 요청 중 진 쪽 포함)
        """
        key = normalize_code(code)

        try:
            if self._redeem_repo.find_by_code(key) is None:
                raise CodeNotFoundError()
            redeemed = self._redeem_repo.mark_used(key, handle, self._clock.now())
        except PyMongoError as exc:
            logger.exception(
                "redeem code persistence failed",
                extra={"handle": handle, "code": key},
            )
            raise InternalPersistenceError() from exc

        if redeemed is None:
            raise CodeAlreadyUsedError()

        try:
            points = self._account_service.credit(handle, redeemed.points)
        except InternalPersistenceError:
            # 코드는 이미 사용 처리됐으므로 수동 보정이 가능하도록 남긴다.
            logger.error(
                "redeem code consumed but crediting points failed",
                extra={"handle": handle, "code": key, "points": redeemed.points},
            )
            raise

        logger.info(
            "redeem code applied",
            extra={"handle": handle, "code": key, "points": points},
        )
        return RedeemResult(points=points, added_points=redeemed.points)


def get_redeem_code_repository(
    db: Database = Depends(get_database),
) -> RedeemCodeRepositoryInterface:
    """FastAPI DI용 RedeemCodeRepository 팩토리."""

    return RedeemCodeRepository(db)


def get_redeem_service(
    redeem_repo: RedeemCodeRepositoryInterface = Depends(get_redeem_code_repository),
    account_service: AccountService = Depends(get_account_service),
    clock: Clock = Depends(get_clock),
) -> RedeemService:
    """FastAPI DI용 RedeemService 팩토리."""

    return RedeemService(
        redeem_repo=redeem_repo,
        account_service=account_service,
        clock=clock,
    )
