from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(prefix="/admin", tags=["health"])


@router.get("/health", response_class=PlainTextResponse)
async def health():
    return "OK"
