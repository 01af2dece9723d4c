from fastapi import APIRouter

from interview_recorder.schemas.response import OkResponse

router = APIRouter(tags=["health"])


@router.get("/api/health", response_model=OkResponse)
def health() -> OkResponse:
    """Liveness probe."""
    return OkResponse()
