from celery import Celery
from ..platform.config import settings

celery_app = Celery(
    "talentpulse",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "queued-report-pdfs-every-minute": {
            "task": "talentpulse.tasks.report_tasks.process_queued_pdfs",
            "schedule": 60.0,
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["talentpulse.tasks"], related_name="report_tasks")
