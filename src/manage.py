"""Card vending management CLI.

Database schema management plus the operator maintenance procedures.

Usage:
    python src/manage.py setup-db       # Create all tables
    python src/manage.py drop-db        # Drop all tables
    python src/manage.py expire-stale   # Expire unpaid pending orders once
    python src/manage.py reconcile      # Repair card/order anomalies
"""

import argparse
import json
import sys


def _domain():
    from vending.domain import vending

    vending.init()
    return vending


def setup_database():
    from vending.utils.db import setup_db

    domain = _domain()
    print("Creating vending database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    from vending.utils.db import drop_db

    domain = _domain()
    print("Dropping vending database schema...")
    drop_db(domain)
    print("Done.")


def expire_stale(older_than_minutes=None):
    from vending.maintenance.reclamation import expire_stale_pending_orders

    with _domain().domain_context():
        expired = expire_stale_pending_orders(older_than_minutes=older_than_minutes)
    print(f"Expired {expired} stale pending order(s).")


def reconcile():
    from vending.maintenance.reconciliation import reconcile_inventory

    with _domain().domain_context():
        report = reconcile_inventory(requested_by="cli")
    print(json.dumps(report, indent=2))


def main():
    parser = argparse.ArgumentParser(description="Card vending management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    expire_parser = subparsers.add_parser("expire-stale", help="Expire unpaid pending orders")
    expire_parser.add_argument(
        "--older-than",
        type=int,
        dest="older_than",
        help="Pending timeout in minutes (default: policy)",
    )

    subparsers.add_parser("reconcile", help="Repair card/order anomalies")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "expire-stale":
        expire_stale(args.older_than)
    elif args.command == "reconcile":
        reconcile()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
