from fastapi import APIRouter, Depends

from ..auth.dependencies import require_author
from ..database import SessionDep
from . import service
from .schemas import DashboardStats

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/dashboard", response_model=DashboardStats, dependencies=[Depends(require_author)])
async def dashboard(db: SessionDep):
    return await service.get_dashboard_stats(db)
