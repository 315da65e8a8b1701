import logging
from .celery_app import celery_app
from ..platform.request_context import bound_request_id

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def generate_report_pdf(self, assignment_id: str, request_id: str | None = None):
    """Render the report PDF and store it in S3. Failures are retried."""
    from ..components.reports.pdf_jobs import default_renderer, process_pdf_job
    from ..platform.database import SessionLocal

    db = SessionLocal()
    with bound_request_id(request_id or self.request.id):
        try:
            row = process_pdf_job(db, assignment_id, renderer=default_renderer())
            if row is None:
                logger.info(f"Report PDF for assignment {assignment_id} already claimed, skipping")
                return {"assignment_id": assignment_id, "skipped": True}
            logger.info(f"Report PDF ready for assignment {assignment_id}")
            return {
                "assignment_id": assignment_id,
                "pdf_storage_path": row.pdf_storage_path,
                "pdf_version": row.pdf_version,
            }
        except Exception as exc:
            logger.error(f"Report PDF failed for assignment {assignment_id}: {exc}")
            raise self.retry(exc=exc)
        finally:
            db.close()


@celery_app.task
def process_queued_pdfs():
    """Periodic task: render PDFs still waiting in the queue."""
    from ..components.reports.pdf_jobs import process_queued_pdfs as sweep
    from ..platform.database import SessionLocal

    db = SessionLocal()
    try:
        result = sweep(db)
        if result["processed"] or result["failed"]:
            logger.info(
                f"Queued PDF sweep: {result['processed']} ready, {result['failed']} failed, "
                f"{result['skipped']} skipped"
            )
        return result
    finally:
        db.close()
