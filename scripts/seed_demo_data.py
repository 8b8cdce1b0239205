#!/usr/bin/env python3
"""Seed the read-only demo business (and optionally a super admin)."""
import argparse
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from groomhub import create_app, db
from groomhub.demo import seed_demo_business


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--owner-password", default="demo-password", help="password for owner@stratumhub.example")
    parser.add_argument("--admin-email", help="create a super admin profile with this email")
    parser.add_argument("--admin-password", help="password for the super admin profile")
    args = parser.parse_args()

    if bool(args.admin_email) != bool(args.admin_password):
        parser.error("--admin-email and --admin-password must be given together")

    app = create_app()
    with app.app_context():
        db.create_all()
        business = seed_demo_business(
            owner_password=args.owner_password,
            admin_email=args.admin_email,
            admin_password=args.admin_password,
        )
        print(f"✅ Demo business ready: {business.name} (id={business.business_id}, slug={business.slug})")


if __name__ == "__main__":
    main()
