"""
Create (or promote) an admin user.

Usage: python scripts/create_admin_user.py --username admin --email admin@example.com [--password ...]
"""
import argparse
import getpass
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.models.base import SessionLocal, init_db
from storefront.models.user import User
from storefront.services import auth_service
from storefront.exceptions import StorefrontError


def main():
    parser = argparse.ArgumentParser(description="Create an admin user")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == args.email.lower().strip()).first()
        if existing:
            if existing.is_admin:
                print(f"Admin user already exists: {existing.username} <{existing.email}>")
            else:
                existing.is_admin = True
                db.commit()
                print(f"Promoted {existing.username} <{existing.email}> to admin")
            return 0

        password = args.password or getpass.getpass("Password: ")
        try:
            user = auth_service.create_user(db, args.username, args.email, password, is_admin=True)
        except StorefrontError as e:
            print(f"Error: {e.message}")
            return 1
        print("Admin user created successfully!")
        print(f"  Username: {user.username}")
        print(f"  Email:    {user.email}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
