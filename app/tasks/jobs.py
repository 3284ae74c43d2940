from app.tasks.celery_app import celery
from app.tasks import worker_jobs

@celery.task(name="app.tasks.jobs.sweep_activity_statuses")
def sweep_activity_statuses():
    return worker_jobs.sweep_activity_statuses()
