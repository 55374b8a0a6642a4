from fastapi import APIRouter

from .account import router as account_router

api_router = APIRouter()
api_router.include_router(
    account_router
)  # prefix는 router 파일 내부에서 정의되어 있음 (/account)
