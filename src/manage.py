"""Marketplace management CLI.

Provides commands to create and drop the database schema, and the entry
point the scheduler calls once a day (cron ``0 0 * * *``) to expire overdue
subscriptions.

Usage:
    python src/manage.py setup-db               # Create all tables
    python src/manage.py drop-db                # Drop all tables
    python src/manage.py expire-subscriptions   # Run the expiration sweep
"""

import argparse
import sys


def _domain():
    from marketplace.domain import marketplace

    marketplace.init()
    return marketplace


def setup_database():
    """Create the marketplace database schema."""
    from marketplace.utils.db import setup_db

    domain = _domain()
    print("Creating marketplace database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    """Drop the marketplace database schema."""
    from marketplace.utils.db import drop_db

    domain = _domain()
    print("Dropping marketplace database schema...")
    drop_db(domain)
    print("Done.")


def expire_subscriptions(correlation_id=None):
    """Run one scheduled expiration sweep. Exits non-zero when any item failed."""
    from marketplace.subscription.expiration import SweepTrigger, run_expiration_sweep

    domain = _domain()
    with domain.domain_context():
        summary = run_expiration_sweep(trigger=SweepTrigger.SCHEDULE, correlation_id=correlation_id)

    print(
        f"Processed {summary.processed_count} subscription(s): "
        f"{summary.expired_count} expired, {summary.suspended_count} restaurant(s) suspended."
    )
    for error in summary.errors:
        print(f"  ERROR {error}", file=sys.stderr)
    return 1 if summary.errors else 0


def main():
    parser = argparse.ArgumentParser(description="Marketplace management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    expire_parser = subparsers.add_parser("expire-subscriptions", help="Expire overdue subscriptions")
    expire_parser.add_argument(
        "--correlation-id",
        help="Correlation id for the run's audit entries (default: generated)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "expire-subscriptions":
        sys.exit(expire_subscriptions(args.correlation_id))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
