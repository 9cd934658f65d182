from fastapi import APIRouter

from ._aggregate import router as aggregate_router
from ._git import router as git_router
from ._health import router as health_router
from ._repos import router as repos_router

router = APIRouter(prefix="/api")

router.include_router(health_router)
router.include_router(repos_router)
router.include_router(git_router)
router.include_router(aggregate_router)
