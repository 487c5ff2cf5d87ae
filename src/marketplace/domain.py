"""Marketplace bounded context: restaurants, subscriptions, products and orders.

Restaurants stay visible to customers only while they hold a valid monthly
subscription. Admins validate subscription payments manually, a daily sweep
expires overdue subscriptions and suspends their restaurants, and every state
change is written to an append-only audit trail.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
