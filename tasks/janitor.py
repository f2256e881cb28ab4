"""Periodic janitor tasks (scheduled by Celery Beat, see Config.CELERY)."""

import logging

from celery import shared_task

from models import db
from reservations.lifecycle import run_expiry_sweep, run_completion_sweep
from utils.audit import log_event

logger = logging.getLogger(__name__)


def _run_sweep(sweep, result_key, action):
    try:
        changed = sweep()
    except Exception as exc:
        db.session.rollback()
        # beat fires again next interval
        logger.error("%s failed: %s", action, exc, exc_info=True)
        return {result_key: 0, "error": str(exc)}

    if changed:
        log_event(action, entity="booking", metadata={result_key: changed})
    return {result_key: changed}


@shared_task(name="reservations.expire_stale_holds")
def expire_stale_holds() -> dict:
    """
    Expire pending holds older than the hold window.

    Runs every minute via Celery Beat.

    Returns:
        dict: {"expired": number of holds flipped to expired}
    """
    return _run_sweep(run_expiry_sweep, "expired", "SWEEP_EXPIRE_HOLDS")


@shared_task(name="reservations.complete_past_bookings")
def complete_past_bookings() -> dict:
    """
    Complete confirmed bookings whose slot has ended.

    Runs every 15 minutes via Celery Beat.

    Returns:
        dict: {"completed": number of bookings flipped to completed}
    """
    return _run_sweep(run_completion_sweep, "completed", "SWEEP_COMPLETE_BOOKINGS")
