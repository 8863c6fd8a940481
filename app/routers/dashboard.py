from fastapi import APIRouter, Depends

from app.core.auth import get_caller
from app.core.cancellation import CancellationToken
from app.core.context import get_attendance_store
from app.core.session import Caller
from app.routers.common import get_view_token, unwrap
from app.schemas.stats import DashboardSummary
from app.stores.attendance_store import AttendanceStore

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    store: AttendanceStore = Depends(get_attendance_store),
    token: CancellationToken = Depends(get_view_token),
    caller: Caller = Depends(get_caller),
):
    """
    Totals by status and priority plus the latest attendances.

    Recomputed on every call; never cached.
    """
    return unwrap(await store.fetch_dashboard_summary(token=token, caller=caller))
