"""
Show the Shiprocket integration status and, optionally, the pickup locations.

Never logs in: a missing or expired token has to be refreshed through
POST /api/v1/shipping/shiprocket/integration.

Usage: python scripts/check_shiprocket.py [--pickup]
"""
import argparse
import asyncio
import sys
import os
from datetime import datetime
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.models.base import SessionLocal, init_db
from storefront.connectors.shiprocket_connector import ShiprocketConnector, pick_pickup_location
from storefront.connectors.token_cache import TokenCache
from storefront.exceptions import StorefrontError


async def check(show_pickup: bool) -> int:
    db = SessionLocal()
    try:
        carrier = ShiprocketConnector(db, TokenCache())
        integration = carrier.get_integration()
        if not integration:
            print("Shiprocket integration: not configured")
            return 1

        print(f"Shiprocket integration: {integration.email}")
        last = integration.last_authenticated
        print(f"  Last authenticated: {last:%Y-%m-%d %H:%M} UTC" if last else "  Last authenticated: never")

        token_valid = await carrier.validate_connection()
        if not token_valid:
            print("  Token: missing or expired, re-authenticate the integration")
            return 1
        remaining = integration.token_expiry - datetime.utcnow()
        print(f"  Token: valid for {remaining.days}d {remaining.seconds // 3600}h")

        if show_pickup:
            try:
                addresses = await carrier.get_pickup_locations()
            except StorefrontError as e:
                print(f"  Pickup locations: error - {e.message}")
                return 1
            print(f"  Pickup locations ({len(addresses)}):")
            for address in addresses:
                print(f"    - {address.get('pickup_location')} ({address.get('city')}, {address.get('pin_code')})")
            if addresses:
                try:
                    print(f"  Selected for shipments: {pick_pickup_location(addresses)}")
                except StorefrontError as e:
                    print(f"  Selected for shipments: none ({e.message})")
        return 0
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Check the Shiprocket integration")
    parser.add_argument("--pickup", action="store_true", help="Also fetch pickup locations from Shiprocket")
    args = parser.parse_args()

    init_db()
    return asyncio.run(check(args.pickup))


if __name__ == "__main__":
    sys.exit(main())
