"""Background tasks run by the Celery worker."""
import logging

from partake.config import settings
from partake.database import SessionLocal
from partake.services import account_service
from partake.worker import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="partake.tasks.purge_expired_accounts",
    # Hard backstop; the sweep itself stops starting users after the budget.
    time_limit=settings.PURGE_TIME_LIMIT_SECONDS + 60,
)
def purge_expired_accounts() -> dict:
    """Erase accounts whose deletion grace period has elapsed.

    Per-user failures are logged and reported; they never abort the sweep.
    Accounts left over by a run that spent its budget wait for the next run.
    """
    logger.info("Starting scheduled task: purge expired accounts")
    db = SessionLocal()
    try:
        result = account_service.purge_expired(db, budget_seconds=settings.PURGE_TIME_LIMIT_SECONDS)
    finally:
        db.close()
    if result.failures:
        logger.error("Purge finished with %d failures: %s", len(result.failures), result.failures)
    logger.info("Purged %d expired accounts", result.purged)
    return {"purged": result.purged, "failures": result.failures, "stopped_early": result.stopped_early}
