"""장기 비활성 계정 파기(purge).

접근 off 상태가 purge_after_days 이상 이어진 계정은 identity/profile 엔트리와
유저 소유 데이터 트리를 삭제하고, 포인트 0 / off 상태로 초기화한다.
초기화 시 off 시작 시각을 오늘 자정으로 재설정하므로 재활성화하지 않는 유저는
이후에도 같은 주기로 다시 purge 된다.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..clock import Clock
from ..models.account import AccountRecord
from ..repositories.interfaces import UserDataStoreInterface, UserRepositoryInterface


logger = logging.getLogger(__name__)


class PurgeService:
    def __init__(
        self,
        user_repo: UserRepositoryInterface,
        data_store: UserDataStoreInterface,
        clock: Clock,
        purge_after_days: int = 30,
    ) -> None:
        self._user_repo = user_repo
        self._data_store = data_store
        self._clock = clock
        self._purge_after = timedelta(days=purge_after_days)

    def is_due(self, record: AccountRecord) -> bool:
        if record.access_on or record.access_off_since is None:
            return False
        return self._clock.now() - record.access_off_since >= self._purge_after

    def reset(self, record: AccountRecord) -> None:
        """계정 레코드를 purge 직후 상태로 초기화한다 (삭제가 아니라 리셋)."""
        today_midnight = self._clock.today_midnight()
        record.points = 0.0
        record.access_on = False
        record.last_check_in_date = ""
        record.access_off_since = today_midnight
        record.last_cost_applied_at = today_midnight

    def destroy_user_data(self, handle: str) -> None:
        """identity/profile 엔트리와 유저 데이터 트리를 삭제한다.

        best-effort: 실패는 로그만 남기고 호출자에게 전파하지 않는다.
        """
        try:
            self._user_repo.delete_by_handle(handle)
        except Exception:  # noqa: BLE001
            logger.warning(
                "failed to delete user profile during purge",
                extra={"handle": handle},
                exc_info=True,
            )

        try:
            self._data_store.delete_tree(handle)
        except Exception:  # noqa: BLE001
            logger.warning(
                "failed to delete user data tree during purge",
                extra={"handle": handle},
                exc_info=True,
            )
