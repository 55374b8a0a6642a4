from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ..models.account import AccountRecord
from ..models.redeem_code import RedeemCode


class AccountRepositoryInterface(Protocol):
    """AccountRepository가 따라야 할 최소한의 계약.

    Service 레이어는 이 인터페이스에만 의존하고, 구체 구현(Mongo 등)은 몰라도 된다.
    - save 는 record.version 을 기준으로 한 compare-and-set 이어야 하며,
      버전이 어긋나면 ConcurrentUpdateError 를 발생시킨다.
    """

    def find_by_handle(
        self, handle: str
    ) -> AccountRecord | None:  # pragma: no cover - Protocol
        ...

    def insert_if_absent(
        self, record: AccountRecord
    ) -> AccountRecord:  # pragma: no cover - Protocol
        """레코드가 없으면 저장하고, 이미 있으면(동시 생성 경합) 기존 레코드를 반환한다."""
        ...

    def save(
        self, record: AccountRecord
    ) -> AccountRecord:  # pragma: no cover - Protocol
        ...


class RedeemCodeRepositoryInterface(Protocol):
    """RedeemCodeRepository가 따라야 할 최소한의 계약.

    - code 는 normalize_code 로 정규화된 키를 받는다.
    - mark_used 는 used=False 조건부 원자적 갱신(compare-and-set)이어야 한다.
    """

    def find_by_code(
        self, code: str
    ) -> RedeemCode | None:  # pragma: no cover - Protocol
        ...

    def mark_used(
        self, code: str, handle: str, used_at: datetime
    ) -> RedeemCode | None:  # pragma: no cover - Protocol
        """미사용 코드를 사용 처리하고 갱신된 코드를 반환한다. 이미 사용된 경우 None."""
        ...


class UserRepositoryInterface(Protocol):
    """identity/profile(users) 엔트리에 대한 계약.

    계정 서비스는 상태 조회 시 표시 이름을 읽고, purge 시 엔트리를 삭제한다.
    """

    def find_name_by_handle(
        self, handle: str
    ) -> str | None:  # pragma: no cover - Protocol
        """저장된 표시 이름. 엔트리가 없거나 이름이 비어 있으면 None."""
        ...

    def delete_by_handle(
        self, handle: str
    ) -> bool:  # pragma: no cover - Protocol
        ...


class UserDataStoreInterface(Protocol):
    """유저 소유 데이터 트리에 대한 계약."""

    def delete_tree(
        self, handle: str
    ) -> bool:  # pragma: no cover - Protocol
        """handle 의 데이터 트리를 삭제한다. 삭제할 트리가 없었으면 False."""
        ...
