from fastapi import APIRouter

router = APIRouter()


@router.get("")
async def health_check():
    """Liveness probe. Does not touch the cluster."""
    return {"status": "healthy"}
