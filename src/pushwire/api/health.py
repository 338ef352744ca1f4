from fastapi import APIRouter

router = APIRouter()


@router.get("")
async def health() -> dict:
    """Report that the service is up."""
    return {"status": "ok"}
