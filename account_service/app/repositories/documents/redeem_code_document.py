from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    OptionalMongoDateTime,
    build_document_data_from_domain,
)

from ...models.redeem_code import RedeemCode


class RedeemCodeDocument(BaseDocument):
    """MongoDB redeem_codes 컬렉션 도큐먼트 모델."""

    code: str
    points: float
    used: bool = False
    used_by: str | None = None
    used_at: OptionalMongoDateTime = None

    @classmethod
    def from_domain(cls, code: RedeemCode) -> "RedeemCodeDocument":
        data = build_document_data_from_domain(code)
        return cls.model_validate(data)

    def to_domain(self) -> RedeemCode:
        return RedeemCode(
            code=self.code,
            points=self.points,
            used=self.used,
            used_by=self.used_by,
            used_at=self.used_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
