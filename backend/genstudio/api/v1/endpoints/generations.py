from fastapi import APIRouter, Depends, Request, status

from genstudio.schemas.job import JobRecord, StartJobResponse, UpdateView, VideoJobRequest, WebsiteJobRequest
from genstudio.services.job_tracking.initiator import JobInitiator
from genstudio.services.job_tracking.reader import StatusReader

router = APIRouter()


def get_initiator(request: Request) -> JobInitiator:
    return request.app.state.initiator


def get_reader(request: Request) -> StatusReader:
    return request.app.state.reader


@router.post("/video", response_model=StartJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_video_generation(
    request: VideoJobRequest,
    initiator: JobInitiator = Depends(get_initiator)
):
    """
    Start a video render with one of the registered providers
    (stability, runway, creatomate, mock). Poll the status endpoint
    with the returned jobId.
    """
    return await initiator.start("video", request.model_dump())


@router.post("/website", response_model=StartJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_website_generation(
    request: WebsiteJobRequest,
    initiator: JobInitiator = Depends(get_initiator)
):
    """
    Start a website build. Thinking, code snapshots and image previews
    appear on the updates endpoint while it runs.
    """
    return await initiator.start("website", request.model_dump())


@router.get("/{job_id}/status", response_model=JobRecord)
async def get_generation_status(
    job_id: str,
    reader: StatusReader = Depends(get_reader)
):
    """
    Current record for a job. Unknown or expired jobs come back as a
    failed record rather than a 404.
    """
    return await reader.get_status(job_id)


@router.get("/{job_id}/updates", response_model=UpdateView)
async def get_generation_updates(
    job_id: str,
    reader: StatusReader = Depends(get_reader)
):
    return await reader.get_updates(job_id)
