from __future__ import annotations

from pymongo.database import Database

from .interfaces import UserRepositoryInterface


class UserRepository(UserRepositoryInterface):
    """users(identity/profile) 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["users"]

    def find_name_by_handle(self, handle: str) -> str | None:
        doc = self._col.find_one({"handle": handle}, {"name": 1})
        if not doc:
            return None
        name = doc.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        return name.strip()

    def delete_by_handle(self, handle: str) -> bool:
        """handle 기준으로 유저 도큐먼트를 삭제한다.

        - 삭제된 도큐먼트가 있으면 True, 없으면 False 를 반환한다.
        """

        result = self._col.delete_one({"handle": handle})
        return result.deleted_count > 0
