from __future__ import annotations

import os
from dataclasses import dataclass


MONGO_URI_ENV = "MONGO_URI"
MONGO_DB_NAME_ENV = "MONGO_DB_NAME"
MONGO_TIMEOUT_MS_ENV = "MONGO_SERVER_SELECTION_TIMEOUT_MS"


@dataclass(slots=True)
class MongoConfig:
    """MongoDB 연결 설정.

    - db_name 이 None 이면 URI 에 포함된 기본 데이터베이스를 사용한다.
    """

    uri: str
    db_name: str | None = None
    server_selection_timeout_ms: int = 5000


def get_mongo_uri() -> str:
    """MongoDB 연결에 사용할 URI를 반환한다.

    환경 변수에서만 읽고, 설정되지 않은 경우에는 애플리케이션이 즉시
    실패하도록 RuntimeError를 발생시킨다.
    """

    value = os.getenv(MONGO_URI_ENV)
    if not value:
        raise RuntimeError(
            f"{MONGO_URI_ENV} environment variable is required for MongoDB",
        )
    return value


def get_mongo_db_name() -> str | None:
    value = os.getenv(MONGO_DB_NAME_ENV, "").strip()
    return value or None


def load_mongo_config() -> MongoConfig:
    raw_timeout = os.getenv(MONGO_TIMEOUT_MS_ENV, "5000")
    try:
        timeout_ms = int(raw_timeout)
    except ValueError as exc:
        raise RuntimeError(
            f"invalid {MONGO_TIMEOUT_MS_ENV}: {raw_timeout!r}",
        ) from exc

    return MongoConfig(
        uri=get_mongo_uri(),
        db_name=get_mongo_db_name(),
        server_selection_timeout_ms=timeout_ms,
    )
