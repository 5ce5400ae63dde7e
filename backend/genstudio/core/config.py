from typing import Dict, List, Union
from pydantic import AnyHttpUrl, validator
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "GenStudio API"
    LOG_LEVEL: str = "INFO"

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Job tracking
    JOB_STORE_BACKEND: str = "memory"  # memory, redis
    JOB_DISPATCH_MODE: str = "local"  # local, celery
    JOB_KEY_PREFIX: str = "generation"
    JOB_RECORD_TTL_SECONDS: int = 3600  # 1 hour
    STORE_CLEANUP_INTERVAL_SECONDS: int = 30 * 60

    # Vendor polling
    VIDEO_POLL_INTERVAL_SECONDS: float = 10.0
    VIDEO_POLL_MAX_ATTEMPTS: int = 90  # ~15 minutes at 10s
    VENDOR_REQUEST_TIMEOUT: int = 120

    # Video vendors
    STABILITY_API_KEY: str = ""
    RUNWAY_API_KEY: str = ""
    CREATOMATE_API_KEY: str = ""
    CREATOMATE_TEMPLATE_IDS: Dict[str, str] = {
        "social-reel": "543a4dfc-2286-45f1-acf5-86070a961708",
        "product-showcase": "4cc27f0e-4641-44c2-a768-6b757225e11f",
    }

    # Website generation
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    PEXELS_API_KEY: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
