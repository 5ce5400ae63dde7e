from genstudio.core.config import settings

CODE_TYPES = ("html", "css", "js", "json")


def record_key(job_id: str, prefix: str = None) -> str:
    return f"{prefix or settings.JOB_KEY_PREFIX}:{job_id}"


def stream_key(job_id: str, stream: str, prefix: str = None) -> str:
    return f"{record_key(job_id, prefix)}:{stream}"


def status_key(job_id: str) -> str:
    return stream_key(job_id, "status")


def thinking_key(job_id: str) -> str:
    return stream_key(job_id, "thinking")


def code_key(job_id: str, code_type: str) -> str:
    if code_type not in CODE_TYPES:
        raise ValueError(f"Unknown code stream: {code_type}")
    return stream_key(job_id, f"code:{code_type}")


def images_key(job_id: str) -> str:
    return stream_key(job_id, "images")
