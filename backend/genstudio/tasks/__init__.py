from .generation_tasks import run_generation_job
