"""
Overhead calculator routes.

POST /api/overhead/save       - upsert the owner's overhead inputs
GET  /api/overhead/me         - stored inputs + freshly computed results
POST /api/overhead/calculate  - compute results for unsaved inputs (live preview)
"""
import logging
from fastapi import APIRouter, Depends
from app.api.deps import get_current_user, get_finance_engine
from app.api.responses import success_response
from app.models.finance_schema import OverheadSaveRequest
from app.models.orm_models import User
from app.services.finance_engine import FinanceEngine, overhead_payload
from app.services.overhead_engine import compute_overhead_results

router = APIRouter(prefix="/api/overhead", tags=["Overhead Calculator"])
logger = logging.getLogger("rateboard-overhead")


@router.post("/save")
async def save_overhead(
    req: OverheadSaveRequest,
    user: User = Depends(get_current_user),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    record = await finance.save_overhead(user, req.model_dump())
    return success_response("Overhead data saved successfully", overhead_payload(record))


@router.get("/me")
async def get_overhead(
    user: User = Depends(get_current_user),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    record = await finance.get_overhead(user.id)
    return success_response("Overhead data retrieved successfully", overhead_payload(record))


@router.post("/calculate")
async def calculate_overhead(
    req: OverheadSaveRequest,
    user: User = Depends(get_current_user),
):
    results = compute_overhead_results(req.model_dump())
    return success_response("Overhead calculated", {"calculations": results.to_dict()})
