"""계정 MongoDB 도큐먼트.

accounts 컬렉션에 유저당 하나씩 저장되며, version 필드로 동시 갱신을 감지한다.
"""

from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    OptionalMongoDateTime,
    build_document_data_from_domain,
)

from ...models.account import AccountRecord


class AccountDocument(BaseDocument):
    """MongoDB accounts 컬렉션 도큐먼트 모델."""

    handle: str
    points: float
    access_on: bool
    last_cost_applied_at: OptionalMongoDateTime = None
    last_check_in_date: str = ""
    access_off_since: OptionalMongoDateTime = None
    version: int = 0

    @classmethod
    def from_domain(cls, record: AccountRecord) -> "AccountDocument":
        data = build_document_data_from_domain(record)
        return cls.model_validate(data)

    def to_domain(self) -> AccountRecord:
        return AccountRecord(
            handle=self.handle,
            points=self.points,
            access_on=self.access_on,
            last_cost_applied_at=self.last_cost_applied_at,
            last_check_in_date=self.last_check_in_date,
            access_off_since=self.access_off_since,
            created_at=self.created_at,
            updated_at=self.updated_at,
            version=self.version,
        )
