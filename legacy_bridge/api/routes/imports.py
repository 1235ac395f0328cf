"""Import job, template and analysis endpoints."""

import asyncio
import logging
from typing import Dict, Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Request

from ..models import (
    AnalysisResponse,
    ExecuteResponse,
    ImportJobCreate,
    ImportJobListResponse,
    ImportJobResponse,
    ImportRecordListResponse,
    ImportRecordResponse,
    JobProgressResponse,
    MappingSetModel,
)
from ...config import PipelineSettings
from ...errors import ImportJobError, JobStateError
from ...models.job import JobStatus, SourceSystemType
from ...models.record import RecordStatus
from ...orchestrator import ImportOrchestrator
from ...services.analyzer import analyze_data_structure
from ...services.templates import get_mapping_templates

logger = logging.getLogger(__name__)

router = APIRouter()

orchestrator = ImportOrchestrator(settings=PipelineSettings.from_env())

# Cancel signals for jobs running in this process
cancel_events: Dict[str, asyncio.Event] = {}


def get_orchestrator() -> ImportOrchestrator:
    return orchestrator


def job_response(job) -> ImportJobResponse:
    return ImportJobResponse(**job.to_dict())


@router.post("/jobs", response_model=ImportJobResponse, status_code=201)
async def create_import_job(
    data: ImportJobCreate,
    x_tenant_id: str = Header(...),
    x_actor_id: Optional[str] = Header(None),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Create a new pending import job."""
    job = orch.create_import_job(x_tenant_id, data.to_config_dict(), actor_id=x_actor_id)
    return job_response(job)


@router.get("/jobs", response_model=ImportJobListResponse)
async def list_import_jobs(
    status: Optional[JobStatus] = None,
    source_system: Optional[SourceSystemType] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    x_tenant_id: str = Header(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """List the tenant's import jobs, newest first."""
    result = orch.list_jobs(x_tenant_id, status, source_system, page, page_size)
    return ImportJobListResponse(**result.to_dict())


@router.get("/jobs/{job_id}", response_model=ImportJobResponse)
async def get_import_job(
    job_id: str,
    x_tenant_id: str = Header(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Get a specific import job."""
    return job_response(orch.get_job(x_tenant_id, job_id))


@router.post("/jobs/{job_id}/execute", response_model=ExecuteResponse, status_code=202)
async def execute_import_job(
    job_id: str,
    background_tasks: BackgroundTasks,
    x_tenant_id: str = Header(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Start executing a pending import job in the background."""
    job = orch.get_job(x_tenant_id, job_id)
    if job.status != JobStatus.PENDING or job_id in cancel_events:
        raise JobStateError(f"Job {job_id} is {job.status.value}; only pending jobs can run")

    cancel_events[job_id] = asyncio.Event()
    background_tasks.add_task(run_import_task, orch, x_tenant_id, job_id)

    return ExecuteResponse(status="started", job_id=job_id)


@router.post("/jobs/{job_id}/cancel", response_model=ExecuteResponse)
async def cancel_import_job(
    job_id: str,
    x_tenant_id: str = Header(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Ask a running import job to stop at the next batch boundary."""
    job = orch.get_job(x_tenant_id, job_id)
    event = cancel_events.get(job_id)
    if event is None or job.status.is_terminal:
        raise HTTPException(status_code=409, detail=f"Job {job_id} is not running")

    event.set()
    return ExecuteResponse(status="cancelling", job_id=job_id)


@router.get("/jobs/{job_id}/progress", response_model=JobProgressResponse)
async def get_import_progress(
    job_id: str,
    x_tenant_id: str = Header(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Job snapshot with ledger counts by record status."""
    progress = orch.get_job_progress(x_tenant_id, job_id)
    return JobProgressResponse(
        job=job_response(progress["job"]),
        record_stats=progress["record_stats"],
        progress_percentage=progress["progress_percentage"],
    )


@router.get("/jobs/{job_id}/records", response_model=ImportRecordListResponse)
async def list_import_records(
    job_id: str,
    status: Optional[RecordStatus] = None,
    x_tenant_id: str = Header(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Ledger entries of an import job."""
    records = orch.list_import_records(x_tenant_id, job_id, status)
    return ImportRecordListResponse(
        records=[ImportRecordResponse(**r.to_dict()) for r in records],
        total=len(records),
    )


@router.get("/templates/{system_type}", response_model=MappingSetModel)
async def get_templates(system_type: SourceSystemType):
    """Curated field mapping templates for a legacy system."""
    return MappingSetModel(**get_mapping_templates(system_type).to_dict())


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze_upload(
    request: Request,
    system_type: SourceSystemType = Query(...),
    orch: ImportOrchestrator = Depends(get_orchestrator),
):
    """Analyze an uploaded legacy file before creating a job."""
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="Request body is empty")

    report = await asyncio.to_thread(
        analyze_data_structure,
        body,
        system_type,
        None,
        orch.settings.suggestion_threshold,
    )
    return AnalysisResponse(**report.to_dict())


async def run_import_task(orch: ImportOrchestrator, tenant_id: str, job_id: str):
    """Background task that runs an import job to completion."""
    try:
        await orch.execute_import_job(tenant_id, job_id, cancel_event=cancel_events.get(job_id))
    except ImportJobError as e:
        # The job is already marked failed with its error log
        logger.error(f"Background import {job_id} failed: {e.message}")
    finally:
        cancel_events.pop(job_id, None)
