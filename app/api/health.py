"""
Liveness endpoint for load balancers and uptime checks
"""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """Returns HTTP 200 with status ok while the process is serving"""
    return {"status": "ok"}
