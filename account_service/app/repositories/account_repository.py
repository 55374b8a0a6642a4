"""계정 레포지토리 구현체.

accounts 컬렉션에 유저당 하나의 레코드를 저장한다.
동시 요청(주기적 상태 갱신 vs 유저 토글 등)으로 인한 lost update 를 막기 위해
version 필드 기반 optimistic concurrency(compare-and-set)를 사용한다.
"""

from __future__ import annotations

import logging

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from .documents.account_document import AccountDocument
from .interfaces import AccountRepositoryInterface
from ..exceptions import ConcurrentUpdateError
from ..models.account import AccountRecord


logger = logging.getLogger(__name__)


class AccountRepository(AccountRepositoryInterface):
    """accounts 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["accounts"]

    @staticmethod
    def _from_document(doc: dict) -> AccountRecord:
        return AccountDocument.model_validate(doc).to_domain()

    def find_by_handle(self, handle: str) -> AccountRecord | None:
        doc = self._col.find_one({"handle": handle})
        if not doc:
            return None
        return self._from_document(doc)

    def insert_if_absent(self, record: AccountRecord) -> AccountRecord:
        payload = AccountDocument.from_domain(record).to_mongo_record()
        try:
            self._col.insert_one(payload)
        except DuplicateKeyError:
            # 같은 handle 의 첫 요청이 동시에 들어온 경우: 먼저 저장된 레코드를 사용한다.
            existing = self.find_by_handle(record.handle)
            if existing is None:
                raise
            logger.info(
                "account already created by concurrent request",
                extra={"handle": record.handle},
            )
            return existing
        return self._from_document(payload)

    def save(self, record: AccountRecord) -> AccountRecord:
        """record.version 이 저장된 버전과 같을 때만 갱신한다 (버전은 1 증가)."""

        document = AccountDocument.from_domain(record)
        fields = document.to_mongo_record()
        for key in ("_id", "handle", "created_at", "version"):
            fields.pop(key, None)

        doc = self._col.find_one_and_update(
            {"handle": record.handle, "version": record.version},
            {
                "$set": fields,
                "$inc": {"version": 1},
            },
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise ConcurrentUpdateError(record.handle, record.version)
        return self._from_document(doc)
