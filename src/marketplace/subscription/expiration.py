"""Subscription expiration sweep — command and handler.

Runs once a day from the scheduler (``manage.py expire-subscriptions``) or on
demand from the admin maintenance endpoint; both go through
``run_expiration_sweep``.

The sweep selects every ACTIVE subscription whose end date has passed and
dispatches one ``ExpireSubscription`` command per subscription. Each command
runs in its own unit of work:
    1. expire the subscription and audit it (SUBSCRIPTION_EXPIRED)
    2. suspend its restaurant if it is still ACTIVE and audit that
       (RESTAURANT_SUSPENDED, ``automatic_suspension=True``)

A failure rolls back both steps for that subscription only. It is recorded
in the run summary and the sweep moves on; the next run re-selects whatever
is still overdue, so nothing is re-queued here.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from marketplace.audit.audit_log import AuditAction
from marketplace.audit.trail import AuditTrail, snapshot
from marketplace.domain import marketplace
from marketplace.restaurant.restaurant import Restaurant
from marketplace.shared.actor import SYSTEM_ACTOR
from marketplace.shared.clock import as_utc, utc_now
from marketplace.subscription.subscription import Subscription

logger = structlog.get_logger(__name__)

SWEEP_JOB_ENTITY_ID = "subscription-expiration-job"


class SweepTrigger(Enum):
    SCHEDULE = "SCHEDULE"
    ADMIN = "ADMIN"


@dataclass
class SweepSummary:
    """Outcome of one sweep run. ``errors`` feeds alerting, not retries."""

    correlation_id: str
    job_id: str
    trigger: str
    processed_count: int = 0
    expired_subscriptions: list[str] = field(default_factory=list)
    suspended_restaurants: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def expired_count(self) -> int:
        return len(self.expired_subscriptions)

    @property
    def suspended_count(self) -> int:
        return len(self.suspended_restaurants)

    def to_dict(self) -> dict:
        return {
            "correlation_id": self.correlation_id,
            "job_id": self.job_id,
            "trigger": self.trigger,
            "processed_count": self.processed_count,
            "expired_count": self.expired_count,
            "suspended_count": self.suspended_count,
            "expired_subscriptions": list(self.expired_subscriptions),
            "suspended_restaurants": list(self.suspended_restaurants),
            "errors": list(self.errors),
        }


@dataclass
class ExpirationOutcome:
    expired: bool = False
    suspended_restaurant_id: str | None = None


@marketplace.command(part_of="Subscription")
class ExpireSubscription:
    """Expire one overdue subscription and suspend its restaurant."""

    subscription_id: Identifier(required=True)
    trigger: String(choices=SweepTrigger, default=SweepTrigger.SCHEDULE.value)
    correlation_id: String(max_length=64)
    job_id: String(max_length=64)
    triggered_by: String(max_length=255)
    as_of: DateTime()  # Optional: defaults to now


@marketplace.command_handler(part_of=Subscription)
class ExpireSubscriptionHandler:
    @handle(ExpireSubscription)
    def expire_subscription(self, command):
        as_of = as_utc(command.as_of) if command.as_of else utc_now()
        subscription_repo = current_domain.repository_for(Subscription)
        restaurant_repo = current_domain.repository_for(Restaurant)
        trail = AuditTrail(command.correlation_id, command.triggered_by or SYSTEM_ACTOR.actor_id)
        outcome = ExpirationOutcome()

        # Re-read: another run or an admin may have moved it since selection.
        subscription = subscription_repo.find_by_id(command.subscription_id)
        if subscription is None or not subscription.is_active() or not subscription.is_expired(as_of):
            logger.info(
                "Subscription no longer due for expiration",
                subscription_id=str(command.subscription_id),
                correlation_id=trail.correlation_id,
            )
            return outcome

        previous_subscription = snapshot(subscription)
        subscription.expire()
        subscription_repo.add(subscription)
        outcome.expired = True

        trail.record(
            AuditAction.SUBSCRIPTION_EXPIRED,
            subscription,
            previous_state=previous_subscription,
            metadata={
                "job_id": command.job_id,
                "trigger": command.trigger,
                "triggered_at": as_of.isoformat(),
                "reason": "AUTOMATIC_EXPIRATION",
            },
        )

        restaurant = restaurant_repo.find_by_id(subscription.restaurant_id)
        if restaurant is None or not restaurant.is_active():
            return outcome

        previous_restaurant = snapshot(restaurant)
        restaurant.suspend(reason="SUBSCRIPTION_EXPIRED")
        restaurant_repo.add(restaurant)
        outcome.suspended_restaurant_id = str(restaurant.id)

        trail.record(
            AuditAction.RESTAURANT_SUSPENDED,
            restaurant,
            previous_state=previous_restaurant,
            metadata={
                "job_id": command.job_id,
                "reason": "SUBSCRIPTION_EXPIRED",
                "subscription_id": str(subscription.id),
                "automatic_suspension": True,
            },
        )
        logger.info(
            "Restaurant suspended due to subscription expiration",
            restaurant_id=str(restaurant.id),
            subscription_id=str(subscription.id),
            previous_status=previous_restaurant["status"],
        )
        return outcome


def run_expiration_sweep(trigger=SweepTrigger.SCHEDULE, triggered_by=None, correlation_id=None, as_of=None):
    """Entry point shared by the scheduler and the admin trigger.

    Must be called outside a unit of work, otherwise every subscription
    joins the caller's transaction and one failure rolls back the batch.
    """
    as_of = as_utc(as_of) if as_of else utc_now()
    summary = SweepSummary(
        correlation_id=correlation_id or str(uuid4()),
        job_id=str(uuid4()),
        trigger=trigger.value if isinstance(trigger, SweepTrigger) else trigger,
    )
    actor_id = triggered_by or SYSTEM_ACTOR.actor_id

    logger.info(
        "Starting subscription expiration sweep",
        correlation_id=summary.correlation_id,
        job_id=summary.job_id,
        trigger=summary.trigger,
        as_of=as_of.isoformat(),
    )

    if summary.trigger == SweepTrigger.ADMIN.value:
        AuditTrail(summary.correlation_id, actor_id).note(
            AuditAction.ADMIN_ACTION,
            entity_type="System",
            entity_id=SWEEP_JOB_ENTITY_ID,
            metadata={"action": "MANUAL_EXPIRATION_CHECK", "job_id": summary.job_id},
        )

    overdue = current_domain.repository_for(Subscription).find_overdue(as_of)
    logger.info("Found overdue subscriptions", count=len(overdue))

    for subscription in overdue:
        summary.processed_count += 1
        try:
            outcome = current_domain.process(
                ExpireSubscription(
                    subscription_id=str(subscription.id),
                    trigger=summary.trigger,
                    correlation_id=summary.correlation_id,
                    job_id=summary.job_id,
                    triggered_by=actor_id,
                    as_of=as_of,
                ),
                asynchronous=False,
            )
        except Exception as exc:
            summary.errors.append(f"Subscription {subscription.id}: {exc}")
            logger.error(
                "Error processing subscription",
                subscription_id=str(subscription.id),
                correlation_id=summary.correlation_id,
                error=str(exc),
            )
            continue

        if outcome.expired:
            summary.expired_subscriptions.append(str(subscription.id))
        if outcome.suspended_restaurant_id:
            summary.suspended_restaurants.append(outcome.suspended_restaurant_id)

    logger.info(
        "Subscription expiration sweep completed",
        correlation_id=summary.correlation_id,
        processed=summary.processed_count,
        expired=summary.expired_count,
        suspended=summary.suspended_count,
        errors=len(summary.errors),
    )
    return summary
