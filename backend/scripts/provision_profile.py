#!/usr/bin/env python
# ruff: noqa: E402
# E402 disabled: sys.path modification must occur before imports
"""
Operator commands for profiles and roles.

Admins cannot be created through the API; this script is how the first and
subsequent admins are provisioned.

Usage:
    python scripts/provision_profile.py create <principal_id> <email> "<Full Name>" [--admin]
    python scripts/provision_profile.py grant-admin <principal_id>
    python scripts/provision_profile.py deactivate <principal_id>
    python scripts/provision_profile.py activate <principal_id>
    python scripts/provision_profile.py token <principal_id> [--minutes N]

The ``token`` command signs a development bearer token with SECRET_KEY, for
use against a local server without the identity provider.
"""

import argparse
import sys
from datetime import timedelta
from pathlib import Path

# Add the backend directory to the path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger
from sqlalchemy.orm import Session

import repositories.db_models as db_models
from authentication.auth import create_access_token
from models.exceptions import DomainException
from repositories.database import SessionLocal
from services.identity_service import IdentityService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage complaint desk profiles")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Provision a new profile")
    create.add_argument("principal_id")
    create.add_argument("email")
    create.add_argument("full_name")
    create.add_argument(
        "--admin", action="store_true", help="Provision with the admin role"
    )

    grant = commands.add_parser("grant-admin", help="Grant the admin role")
    grant.add_argument("principal_id")

    deactivate = commands.add_parser("deactivate", help="Soft-disable a profile")
    deactivate.add_argument("principal_id")

    activate = commands.add_parser("activate", help="Re-enable a profile")
    activate.add_argument("principal_id")

    token = commands.add_parser("token", help="Print a development bearer token")
    token.add_argument("principal_id")
    token.add_argument("--minutes", type=int, default=60)

    return parser


def run(args: argparse.Namespace, db: Session) -> None:
    if args.command == "create":
        role = db_models.AppRole.ADMIN if args.admin else db_models.AppRole.STUDENT
        profile = IdentityService.provision_profile(
            db, args.principal_id, email=args.email, full_name=args.full_name, role=role
        )
        logger.info(f"Created {role.value} profile {profile.id} <{profile.email}>")
    elif args.command == "grant-admin":
        if IdentityService.grant_role(db, args.principal_id, db_models.AppRole.ADMIN):
            logger.info(f"Granted admin to {args.principal_id}")
        else:
            logger.info(f"{args.principal_id} is already an admin")
    elif args.command in ("deactivate", "activate"):
        IdentityService.set_active(
            db, args.principal_id, is_active=args.command == "activate"
        )
        IdentityService.clear_role_cache(args.principal_id)
        logger.info(f"Profile {args.principal_id} {args.command}d")
    elif args.command == "token":
        IdentityService.get_profile(db, args.principal_id)
        print(
            create_access_token(
                {"sub": args.principal_id},
                expires_delta=timedelta(minutes=args.minutes),
            )
        )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    db: Session = SessionLocal()
    try:
        run(args, db)
        return 0
    except DomainException as e:
        logger.error(f"{args.command} failed: {e.message}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
