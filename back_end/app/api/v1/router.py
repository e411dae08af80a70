from fastapi import APIRouter
from app.api.v1.endpoints import moderation

# mounted under /api/v1 in app.main
router = APIRouter()

router.include_router(moderation.router, prefix="/moderation", tags=["moderation"])
