"""Bulk document job endpoints."""

import logging

from fastapi import APIRouter, Depends, Request

from api.schemas import (
    JobCancelResponse,
    JobDeleteResponse,
    JobListResponse,
    JobSubmitRequest,
    JobSubmitResponse,
    ProblemDetail,
    QueueStatusResponse,
)
from core.dependencies import get_order_provider, get_orchestrator, get_session_context
from core.logging_utils import sanitize_shop
from gst.jobs.orchestrator import BulkJobOrchestrator
from gst.models.jobs import BulkJob
from gst.models.session import SessionContext
from gst.ports import OrderProvider

router = APIRouter(prefix="/v1/jobs", tags=["jobs"])
logger = logging.getLogger(__name__)

ERRORS = {
    400: {"description": "Invalid input or job state", "model": ProblemDetail},
    401: {"description": "Unauthorized", "model": ProblemDetail},
    404: {"description": "Job not found", "model": ProblemDetail},
}


@router.post("", response_model=JobSubmitResponse, responses=ERRORS)
async def submit_job(
    request: Request,
    body: JobSubmitRequest,
    session: SessionContext = Depends(get_session_context),
    orchestrator: BulkJobOrchestrator = Depends(get_orchestrator),
    provider: OrderProvider = Depends(get_order_provider),
):
    job = await orchestrator.submit(session, provider, body.order_ids, body.options())
    logger.info(
        f"Accepted {job.output_format} job for {job.total_items} orders",
        extra={
            "trace_id": getattr(request.state, "trace_id", None),
            "job_id": job.id,
            "shop": sanitize_shop(session.shop),
        },
    )
    return JobSubmitResponse(
        job=job,
        message=f"Bulk {job.output_format.upper()} job created for {job.total_items} orders",
    )


@router.get("", response_model=JobListResponse, responses=ERRORS)
async def list_jobs(
    session: SessionContext = Depends(get_session_context),
    orchestrator: BulkJobOrchestrator = Depends(get_orchestrator),
):
    jobs = await orchestrator.list_jobs(session.shop)
    return JobListResponse(jobs=jobs, count=len(jobs))


@router.get("/queue", response_model=QueueStatusResponse, responses=ERRORS)
async def queue_status(
    session: SessionContext = Depends(get_session_context),
    orchestrator: BulkJobOrchestrator = Depends(get_orchestrator),
):
    return QueueStatusResponse(**orchestrator.queue_status())


@router.get("/{job_id}", response_model=BulkJob, responses=ERRORS)
async def get_job(
    job_id: str,
    session: SessionContext = Depends(get_session_context),
    orchestrator: BulkJobOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.get(job_id, session.shop)


@router.post("/{job_id}/cancel", response_model=JobCancelResponse, responses=ERRORS)
async def cancel_job(
    job_id: str,
    session: SessionContext = Depends(get_session_context),
    orchestrator: BulkJobOrchestrator = Depends(get_orchestrator),
):
    job = await orchestrator.cancel(job_id, session.shop)
    return JobCancelResponse(job=job)


@router.delete("/{job_id}", response_model=JobDeleteResponse, responses=ERRORS)
async def delete_job(
    job_id: str,
    session: SessionContext = Depends(get_session_context),
    orchestrator: BulkJobOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.delete(job_id, session.shop)
    return JobDeleteResponse()
