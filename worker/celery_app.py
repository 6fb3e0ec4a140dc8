from celery import Celery

from api.core.config import get_settings

# Default uses docker-compose service name; for local dev use: redis://localhost:6379/0
redis_url = get_settings().redis_url

celery_app = Celery(
    "enrollments_worker",
    broker=redis_url,
    backend=redis_url,  # Required for task status/result retrieval
    include=["worker.tasks"],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60,
    worker_prefetch_multiplier=1,  # Fair task distribution
)
