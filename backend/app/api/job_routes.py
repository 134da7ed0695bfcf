"""
Job costing routes.

POST   /api/jobs                                  - create a job estimate
GET    /api/jobs                                  - list the company's jobs, newest first
GET    /api/jobs/{id}                             - job + priced line items + totals
PUT    /api/jobs/{id}                             - partial update
DELETE /api/jobs/{id}                             - delete
POST   /api/jobs/{id}/line-items/{index}/duplicate - copy a line item in place and save
"""
import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError
from app.api.deps import get_company_id, get_current_user, get_finance_engine
from app.api.responses import success_response, validation_message
from app.models.finance_schema import JobCreateRequest, JobUpdateRequest, LineItemIn, dump_items
from app.models.orm_models import Job, User
from app.services.finance_engine import FinanceEngine, job_payload, serialize_job
from app.services.finance_config import MAX_LINE_ITEMS
from app.services.pricing_engine import duplicate_item

router = APIRouter(prefix="/api/jobs", tags=["Job Costing"])
logger = logging.getLogger("rateboard-jobs")


async def _load_job(finance: FinanceEngine, job_id: str, company_id: str) -> Job:
    job = await finance.get_job(job_id, company_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("")
async def create_job(
    req: JobCreateRequest,
    user: User = Depends(get_current_user),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    data = req.model_dump(exclude={"line_items"})
    data["line_items"] = dump_items(req.line_items)
    job = await finance.create_job(user, data)
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Job created successfully", job_payload(job, hourly_rate), status_code=201)


@router.get("")
async def list_jobs(
    company_id: str = Depends(get_company_id),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    jobs = await finance.list_jobs(company_id)
    return success_response("Jobs retrieved successfully", {"jobs": [serialize_job(j) for j in jobs]})


@router.get("/{job_id}")
async def get_job(
    job_id: str,
    user: User = Depends(get_current_user),
    company_id: str = Depends(get_company_id),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    job = await _load_job(finance, job_id, company_id)
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Job retrieved successfully", job_payload(job, hourly_rate))


@router.put("/{job_id}")
async def update_job(
    job_id: str,
    body: dict,
    user: User = Depends(get_current_user),
    company_id: str = Depends(get_company_id),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    # Validated here so an empty object reports "at least one field"
    try:
        req = JobUpdateRequest.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=validation_message(e))

    job = await _load_job(finance, job_id, company_id)
    data = req.model_dump(exclude_unset=True, exclude_none=True, exclude={"line_items"})
    if req.line_items is not None:
        data["line_items"] = dump_items(req.line_items)
    job = await finance.update_job(job, data)
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Job updated successfully", job_payload(job, hourly_rate))


@router.delete("/{job_id}")
async def delete_job(
    job_id: str,
    company_id: str = Depends(get_company_id),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    job = await _load_job(finance, job_id, company_id)
    await finance.delete_job(job)
    return success_response("Job deleted successfully")


@router.post("/{job_id}/line-items/{index}/duplicate")
async def duplicate_line_item(
    job_id: str,
    index: int,
    user: User = Depends(get_current_user),
    company_id: str = Depends(get_company_id),
    finance: FinanceEngine = Depends(get_finance_engine),
):
    job = await _load_job(finance, job_id, company_id)
    try:
        items = duplicate_item(job.line_items or [], index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Line item not found")
    if len(items) > MAX_LINE_ITEMS:
        raise HTTPException(status_code=400, detail=f"A job holds at most {MAX_LINE_ITEMS} line items")
    try:
        validated = [LineItemIn.model_validate(item) for item in items]
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=validation_message(e))
    job = await finance.update_job(job, {"line_items": dump_items(validated)})
    hourly_rate = await finance.get_hourly_rate(user.id)
    return success_response("Line item duplicated successfully", job_payload(job, hourly_rate))
