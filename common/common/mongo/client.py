from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from .config import load_mongo_config


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI / MONGO_DB_NAME 에서 연결 정보를 읽어온다.
    - ping 으로 연결을 검증한다.
    - accounts / redeem_codes / users 컬렉션에 필요한 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        config = load_mongo_config()
        # tz_aware=True: 저장된 UTC datetime 을 aware 객체로 돌려받는다.
        client: MongoClient = MongoClient(
            config.uri,
            tz_aware=True,
            serverSelectionTimeoutMS=config.server_selection_timeout_ms,
        )

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        try:
            if config.db_name:
                db = client[config.db_name]
            else:
                db = client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        _client = client
        _db = db

        try:
            _ensure_indexes(_db)
        except Exception as exc:  # noqa: BLE001
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            raise

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert _db is not None
    return _db


def _ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다.

    중복 생성해도 MongoDB 가 처리하므로 idempotent 하다.
    유니크 인덱스는 lazy 생성 경합(DuplicateKeyError)과 코드 중복 발급을 막는 역할도 한다.
    """

    accounts = db["accounts"]
    accounts.create_index(
        [("handle", ASCENDING)],
        name="uniq_handle",
        unique=True,
    )

    redeem_codes = db["redeem_codes"]
    redeem_codes.create_index(
        [("code", ASCENDING)],
        name="uniq_code",
        unique=True,
    )

    users = db["users"]
    users.create_index(
        [("handle", ASCENDING)],
        name="uniq_handle",
        unique=True,
    )
