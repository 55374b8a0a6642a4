from __future__ import annotations


class AccountServiceError(Exception):
    """Base exception for all account-service errors.

    Subclasses carry the machine-readable ``code``, the HTTP status the API
    layer renders them with and a default user-facing message.
    """

    code: str = "account_error"
    status_code: int = 400
    default_message: str = "요청을 처리할 수 없습니다."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotAuthenticatedError(AccountServiceError):
    """No authenticated identity was forwarded by the gateway."""

    code = "not_authenticated"
    status_code = 403
    default_message = "로그인이 필요합니다."


class AlreadyCheckedInError(AccountServiceError):
    """The daily check-in bonus was already granted today."""

    code = "already_checked_in"
    status_code = 409
    default_message = "오늘은 이미 출석 체크를 했습니다."


class InsufficientPointsError(AccountServiceError):
    """Not enough points to pay the activation fee."""

    code = "insufficient_points"
    status_code = 402
    default_message = "포인트가 부족하여 접근을 켤 수 없습니다."


class CodeNotFoundError(AccountServiceError):
    """The redeem code does not exist."""

    code = "code_not_found"
    status_code = 404
    default_message = "존재하지 않거나 만료된 교환 코드입니다."


class CodeAlreadyUsedError(AccountServiceError):
    """The redeem code was already consumed."""

    code = "code_already_used"
    status_code = 409
    default_message = "이미 사용된 교환 코드입니다."


class InternalPersistenceError(AccountServiceError):
    """Storage failures surfaced to callers without internals."""

    code = "internal_error"
    status_code = 500
    default_message = "일시적인 오류가 발생했습니다. 잠시 후 다시 시도해 주세요."


class ConcurrentUpdateError(Exception):
    """Optimistic version check failed while saving an account record.

    Raised by repositories and consumed by the service retry loop; never
    rendered to API callers directly.
    """

    def __init__(self, handle: str, expected_version: int) -> None:
        self.handle = handle
        self.expected_version = expected_version
        super().__init__(
            f"account was modified concurrently (handle={handle}, version={expected_version})"
        )
