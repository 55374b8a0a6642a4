from __future__ import annotations

from datetime import datetime

from pymongo import ReturnDocument
from pymongo.database import Database

from .documents.redeem_code_document import RedeemCodeDocument
from .interfaces import RedeemCodeRepositoryInterface
from ..models.redeem_code import RedeemCode


class RedeemCodeRepository(RedeemCodeRepositoryInterface):
    """redeem_codes 컬렉션에 대한 MongoDB 접근 레이어.

    코드 발급은 운영 도구에서 별도로 수행하며, 이 레이어는 조회와 사용 처리만 담당한다.
    """

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["redeem_codes"]

    def find_by_code(self, code: str) -> RedeemCode | None:
        doc = self._col.find_one({"code": code})
        if not doc:
            return None
        return RedeemCodeDocument.model_validate(doc).to_domain()

    def mark_used(self, code: str, handle: str, used_at: datetime) -> RedeemCode | None:
        # used=False 조건부 갱신: 동시에 같은 코드를 사용해도 한 요청만 매칭된다.
        doc = self._col.find_one_and_update(
            {"code": code, "used": False},
            {
                "$set": {
                    "used": True,
                    "used_by": handle,
                    "used_at": used_at,
                    "updated_at": used_at,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return RedeemCodeDocument.model_validate(doc).to_domain()
