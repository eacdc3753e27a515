import structlog
from fastapi import APIRouter, Depends, Request

from ....infrastructure.repositories import UserRepository
from ..schemas import UserOut

router = APIRouter(tags=["trace"])
logger = structlog.get_logger()

def get_user_repository(request: Request) -> UserRepository:
    return UserRepository(request.app.state.executor)

@router.get("/test-trace", response_model=list[UserOut])
def trigger_trace(repo: UserRepository = Depends(get_user_repository)):
    logger.info("Starting trace request")
    users = repo.find_all()
    logger.info("Retrieved users", count=len(users))
    return users
