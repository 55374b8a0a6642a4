"""포인트 계정 서비스.

상태 조회, 출석 체크, 접근 토글, 포인트 적립, 접근 게이트 판정을 처리한다.
모든 연산은 load -> settle(일일 비용 + purge) -> mutate -> save 파이프라인을 따르며,
save 는 version 기반 compare-and-set 이다. 충돌 시 jitter 를 섞은 지수 backoff 후
파이프라인 전체를 다시 수행한다.

적립(credit)은 이미 사용 처리된 교환 코드의 포인트이므로 재시도 횟수 제한 없이
반영될 때까지 재시도한다. compare-and-set 실패는 다른 요청의 저장 성공을 뜻하므로
경쟁 요청이 유한하면 반드시 끝난다.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, TypeVar

from fastapi import Depends
from pymongo.database import Database
from pymongo.errors import PyMongoError

from common.mongo.client import get_database

from ..clock import Clock
from ..config import AppConfig, LedgerConfig, get_app_config
from ..exceptions import (
    AccountServiceError,
    AlreadyCheckedInError,
    ConcurrentUpdateError,
    InsufficientPointsError,
    InternalPersistenceError,
)
from ..models.account import (
    AccessDecision,
    AccessDenyReason,
    AccountRecord,
    AccountStatus,
    CheckInResult,
    ToggleResult,
    round_half,
)
from ..repositories.account_repository import AccountRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    UserRepositoryInterface,
)
from ..repositories.user_data_store import UserDataStore
from ..repositories.user_repository import UserRepository
from .purge_service import PurgeService
from .settlement import apply_daily_cost


logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_BASE_DELAY_SECONDS = 0.005
RETRY_MAX_DELAY_SECONDS = 0.2


def _sleep_backoff(attempt: int) -> None:
    delay = min(RETRY_MAX_DELAY_SECONDS, RETRY_BASE_DELAY_SECONDS * (2 ** min(attempt, 10)))
    time.sleep(random.uniform(0, delay))


def _no_change(record: AccountRecord) -> None:
    return None


class AccountService:
    """포인트 계정 관련 비즈니스 로직."""

    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        purge_service: PurgeService,
        clock: Clock,
        ledger: LedgerConfig | None = None,
        user_repo: UserRepositoryInterface | None = None,
    ) -> None:
        self._account_repo = account_repo
        self._purge_service = purge_service
        self._clock = clock
        self._ledger = ledger or LedgerConfig()
        self._user_repo = user_repo

    def get_status(self, handle: str, name: str) -> AccountStatus:
        """정산 후 계정 상태 요약. 이번 호출에서 purge 가 일어났으면 purged=True.

        표시 이름은 users 컬렉션에 저장된 값을 우선하고, 없으면 전달받은 name 을 쓴다.
        """
        _, record, purged = self._run(handle, _no_change)
        return AccountStatus(
            handle=handle,
            name=self._display_name(handle, name),
            points=record.points,
            access_on=record.access_on,
            off_days=self._off_days(record),
            can_check_in_today=record.last_check_in_date != self._clock.today(),
            purged=purged,
        )

    def check_in(self, handle: str) -> CheckInResult:
        """하루 한 번 출석 보너스 지급. 오늘 이미 받았으면 AlreadyCheckedInError."""

        def operation(record: AccountRecord) -> CheckInResult:
            today = self._clock.today()
            if record.last_check_in_date == today:
                raise AlreadyCheckedInError()
            record.points = round_half(record.points + self._ledger.check_in_bonus)
            record.last_check_in_date = today
            return CheckInResult(
                points=record.points, last_check_in_date=record.last_check_in_date
            )

        result, _, _ = self._run(handle, operation)
        logger.info(
            "check-in bonus granted",
            extra={"handle": handle, "points": result.points},
        )
        return result

    def toggle_access(self, handle: str, access_on: bool) -> ToggleResult:
        """접근 on/off 전환.

        - 이미 원하는 상태면 아무 것도 바꾸지 않는다.
        - off -> on 은 활성화 비용이 필요하며, 부족하면 InsufficientPointsError.
        - on -> off 는 비용이 없고 off 시작 시각(purge 타이머)을 기록한다.
        """

        def operation(record: AccountRecord) -> ToggleResult:
            if record.access_on == access_on:
                return ToggleResult(access_on=record.access_on, points=record.points)

            if access_on:
                fee = self._ledger.activation_fee
                if record.points < fee:
                    raise InsufficientPointsError()
                record.points = max(0.0, round_half(record.points - fee))
                record.access_off_since = None
                record.access_on = True
            else:
                record.access_on = False
                record.access_off_since = self._clock.now()

            return ToggleResult(access_on=record.access_on, points=record.points)

        result, _, _ = self._run(handle, operation)
        logger.info(
            "access toggled",
            extra={
                "handle": handle,
                "access_on": result.access_on,
                "points": result.points,
            },
        )
        return result

    def credit(self, handle: str, amount: float) -> float:
        """정산 후 포인트를 적립하고 적립 후 잔액을 반환한다."""

        def operation(record: AccountRecord) -> float:
            record.points = round_half(record.points + amount)
            return record.points

        points, _, _ = self._run(handle, operation, retry_until_applied=True)
        return points

    def evaluate_access(self, handle: str) -> AccessDecision:
        """보호 리소스 접근 허용 여부. 정산이 먼저 수행되므로 레코드가 저장될 수 있다."""
        _, record, _ = self._run(handle, _no_change)
        if not record.access_on:
            return AccessDecision(allowed=False, reason=AccessDenyReason.OFF)
        if record.points <= 0:
            return AccessDecision(allowed=False, reason=AccessDenyReason.NO_POINTS)
        return AccessDecision(allowed=True)

    def _display_name(self, handle: str, fallback: str) -> str:
        if self._user_repo is None:
            return fallback
        try:
            stored = self._user_repo.find_name_by_handle(handle)
        except PyMongoError:
            logger.warning(
                "failed to read user profile name", extra={"handle": handle}, exc_info=True
            )
            return fallback
        return stored or fallback

    def _off_days(self, record: AccountRecord) -> int:
        if record.access_on or record.access_off_since is None:
            return 0
        return self._clock.days_between(
            record.access_off_since, self._clock.today_midnight()
        )

    def _run(
        self,
        handle: str,
        operation: Callable[[AccountRecord], T],
        *,
        retry_until_applied: bool = False,
    ) -> tuple[T, AccountRecord, bool]:
        """load -> settle -> operation -> save 를 버전 충돌이 없을 때까지 수행한다.

        Returns:
            (operation 결과, 저장된 레코드, 이번 호출에서 purge 여부)

        operation 이 비즈니스 예외를 던지면 정산 결과만 저장한 뒤 예외를 다시 던진다.
        retry_until_applied 가 True 이면 max_update_retries 를 적용하지 않는다.
        """
        attempts = self._ledger.max_update_retries
        attempt = 0
        while True:
            attempt += 1
            try:
                record = self._load(handle)
                original = record.model_copy(deep=True)
                purged = self._settle(record)

                error: AccountServiceError | None = None
                result: T | None = None
                try:
                    result = operation(record)
                except AccountServiceError as exc:
                    error = exc

                if record.model_dump() != original.model_dump():
                    record.updated_at = self._clock.now()
                    record = self._account_repo.save(record)
            except ConcurrentUpdateError:
                if not retry_until_applied and attempt >= attempts:
                    break
                logger.info(
                    "account update conflict, retrying",
                    extra={"handle": handle, "attempt": attempt},
                )
                _sleep_backoff(attempt)
                continue
            except PyMongoError as exc:
                logger.exception(
                    "account persistence failed", extra={"handle": handle}
                )
                raise InternalPersistenceError() from exc

            if purged:
                logger.info("account purged", extra={"handle": handle})
                self._purge_service.destroy_user_data(handle)

            if error is not None:
                raise error
            return result, record, purged  # type: ignore[return-value]

        logger.error(
            "account update retries exhausted",
            extra={"handle": handle, "attempt": attempts},
        )
        raise InternalPersistenceError()

    def _load(self, handle: str) -> AccountRecord:
        record = self._account_repo.find_by_handle(handle)
        if record is not None:
            return record

        now = self._clock.now()
        initial = AccountRecord(
            handle=handle,
            points=self._ledger.initial_points,
            access_on=True,
            last_cost_applied_at=self._clock.today_midnight(),
            last_check_in_date="",
            access_off_since=None,
            created_at=now,
            updated_at=now,
        )
        created = self._account_repo.insert_if_absent(initial)
        logger.info(
            "account created", extra={"handle": handle, "points": created.points}
        )
        return created

    def _settle(self, record: AccountRecord) -> bool:
        """일일 비용 정산 후 purge 조건을 확인한다. purge 가 일어났으면 True.

        purge 여부는 호출 안에서 정산 전후 access_off_since 를 비교해서만 판단한다.
        """
        off_since_before = record.access_off_since
        apply_daily_cost(record, self._clock, self._ledger.daily_cost)
        if self._purge_service.is_due(record):
            self._purge_service.reset(record)
        return off_since_before is not None and (
            record.access_off_since != off_since_before
        )


def get_clock(config: AppConfig = Depends(get_app_config)) -> Clock:
    """FastAPI DI용 Clock 팩토리."""

    return Clock(config.timezone)


def get_account_repository(
    db: Database = Depends(get_database),
) -> AccountRepositoryInterface:
    """FastAPI DI용 AccountRepository 팩토리."""

    return AccountRepository(db)


def get_user_repository(
    db: Database = Depends(get_database),
) -> UserRepositoryInterface:
    """FastAPI DI용 UserRepository 팩토리."""

    return UserRepository(db)


def get_purge_service(
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
    config: AppConfig = Depends(get_app_config),
    clock: Clock = Depends(get_clock),
) -> PurgeService:
    """FastAPI DI용 PurgeService 팩토리."""

    return PurgeService(
        user_repo=user_repo,
        data_store=UserDataStore(config.user_data_root),
        clock=clock,
        purge_after_days=config.ledger.purge_after_days,
    )


def get_account_service(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    purge_service: PurgeService = Depends(get_purge_service),
    user_repo: UserRepositoryInterface = Depends(get_user_repository),
    clock: Clock = Depends(get_clock),
    config: AppConfig = Depends(get_app_config),
) -> AccountService:
    """FastAPI DI용 AccountService 팩토리."""

    return AccountService(
        account_repo=account_repo,
        purge_service=purge_service,
        clock=clock,
        ledger=config.ledger,
        user_repo=user_repo,
    )
