"""
Pricing matrix routes.

POST /api/pricing/save                        - upsert the owner's service list
GET  /api/pricing/me                          - services priced at the current hourly rate
POST /api/pricing/services/{index}/duplicate  - copy a service in place and save
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from app.api.deps import get_current_user, get_finance_engine
from app.api.responses import success_response, validation_message
from app.models.finance_schema import PricingMatrixSaveRequest, dump_items
from app.models.orm_models import User
from app.services.finance_engine import FinanceEngine, pricing_payload
from app.services.pricing_engine import duplicate_item

router = APIRouter(prefix="/api/pricing", tags=["Pricing Matrix"])
logger = logging.getLogger("rateboard-pricing")


@router.post("/save")
async def save_pricing_matrix(
    req: PricingMatrixSaveRequest,
    user: User = Depends(get_current_user),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    matrix = await finance.save_pricing_matrix(user, dump_items(req.services), req.default_markup_pct)
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Pricing matrix saved successfully", pricing_payload(matrix, hourly_rate))


@router.get("/me")
async def get_pricing_matrix(
    user: User = Depends(get_current_user),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    matrix = await finance.get_pricing_matrix(user.id)
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Pricing matrix retrieved successfully", pricing_payload(matrix, hourly_rate))


@router.post("/services/{index}/duplicate")
async def duplicate_service(
    index: int,
    user: User = Depends(get_current_user),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    matrix = await finance.get_pricing_matrix(user.id)
    if not matrix:
        raise HTTPException(status_code=404, detail="Pricing matrix not found")
    try:
        services = duplicate_item(matrix.services or [], index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Service not found")
    try:
        req = PricingMatrixSaveRequest(services=services, default_markup_pct=matrix.default_markup_pct)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=validation_message(e))
    matrix = await finance.save_pricing_matrix(user, dump_items(req.services), req.default_markup_pct)
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Service duplicated successfully", pricing_payload(matrix, hourly_rate))
