"""Subscription auto-renewal tasks."""

import asyncio

import structlog
from celery import shared_task

logger = structlog.get_logger()


async def _run_sweep() -> dict:
    from chatbilling.billing.renewal import RenewalSweeper, SimulatedPaymentProvider
    from chatbilling.billing.repositories import SqlSubscriptionStore
    from chatbilling.billing.subscriptions import SubscriptionService
    from chatbilling.config import get_settings
    from chatbilling.database import async_session, committed_savepoint, engine

    settings = get_settings()
    try:
        async with async_session() as db:
            sweeper = RenewalSweeper(
                SubscriptionService(SqlSubscriptionStore(db)),
                SimulatedPaymentProvider(settings.PAYMENT_SUCCESS_RATE),
                transaction=committed_savepoint(db),
            )
            result = await sweeper.sweep()
    finally:
        # Pooled connections are bound to this task's event loop
        await engine.dispose()

    return {"renewed": result.renewed, "failed": result.failed, "total": result.total}


@shared_task(
    bind=True,
    name="worker.tasks.renewals.process_renewals",
    max_retries=0,
    acks_late=True,
)
def process_renewals(self, **kwargs):
    """Run one auto-renewal sweep over all subscription bundles."""
    logger.info("renewal_task_start", task_id=self.request.id)
    summary = asyncio.run(_run_sweep())
    logger.info("renewal_task_done", task_id=self.request.id, **summary)
    return summary
