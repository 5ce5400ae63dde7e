from .job import (
    JobStatus, JobRecord, CodeUpdate, ImagePreview, UpdateView, StartJobResponse,
    VideoJobRequest, WebsiteJobRequest
)
