"""Enqueue helpers for Celery jobs fired from request handlers."""
from __future__ import annotations

import logging

from celery import Task as CeleryTask

logger = logging.getLogger(__name__)


def enqueue(job: CeleryTask, *args) -> bool:
    """Queue a job; a broker failure is logged and reported as False."""
    try:
        job.delay(*args)
    except Exception:
        logger.exception("Failed to enqueue background job %s", job.name)
        return False
    logger.info("Enqueued background job %s", job.name)
    return True
