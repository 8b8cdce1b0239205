#!/usr/bin/env python3
"""Create the GroomHub database tables."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from groomhub import create_app
from groomhub.extensions import db
import groomhub.models  # noqa: F401  registers the tables


def init_database(drop: bool = False):
    app = create_app()
    with app.app_context():
        if drop:
            db.drop_all()
            print("Dropped existing tables")
        db.create_all()
        print("✅ Database tables initialized successfully")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--drop", action="store_true", help="drop all tables before creating them")
    args = parser.parse_args()
    init_database(drop=args.drop)
