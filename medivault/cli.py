"""
Command-line tools for operating a MediVault database.

    medivault init-db
    medivault create-user --name "Admin" --email admin@example.com --role ADMIN
    medivault generate-secret
"""

import argparse
import getpass
import secrets
import sys

from medivault.config import DB_URI
from medivault.database import init_engine, make_session_factory, unit_of_work
from medivault.accounts import create_user
from medivault.exceptions import MedivaultError


def cmd_init_db(args) -> int:
    init_engine(args.db_uri)
    print(f"[init] Tables ready on {args.db_uri}")
    return 0


def cmd_create_user(args) -> int:
    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("ERROR: password is required", file=sys.stderr)
        return 1

    engine = init_engine(args.db_uri)
    try:
        with unit_of_work(make_session_factory(engine)) as session:
            user = create_user(
                session,
                name=args.name,
                email=args.email,
                password=password,
                role=args.role,
                specialty=args.specialty,
                license=args.license,
                hospital=args.hospital,
                phone=args.phone,
            )
            print(f"[auth] Created user id={user.id} email={user.email} role={user.role.name}")
    except MedivaultError as e:
        print(f"ERROR: {e.message}", file=sys.stderr)
        return 1
    return 0


def cmd_generate_secret(args) -> int:
    print(f"JWT_SECRET_KEY={secrets.token_hex(32)}")
    print("Copy the line above to your .env file")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="medivault", description="MediVault maintenance commands")
    parser.add_argument("--db-uri", default=DB_URI, help="SQLAlchemy database URI")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init-db", help="create database tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("create-user", help="create an identity (e.g. the first ADMIN)")
    p.add_argument("--name", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--role", required=True, choices=["PATIENT", "DOCTOR", "ADMIN"], type=str.upper)
    p.add_argument("--password", help="prompted for when omitted")
    p.add_argument("--specialty")
    p.add_argument("--license")
    p.add_argument("--hospital")
    p.add_argument("--phone")
    p.set_defaults(func=cmd_create_user)

    p = sub.add_parser("generate-secret", help="print a random JWT signing key")
    p.set_defaults(func=cmd_generate_secret)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
