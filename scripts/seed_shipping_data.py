"""
Seed sample shipping rates and zones.

Usage: python scripts/seed_shipping_data.py [--reset]
"""
import argparse
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.models.base import init_db, session_scope
from storefront.models.shipping import ShippingRate, ShippingZone

SAMPLE_RATES = [
    {
        "name": "Standard Shipping",
        "description": "Regular delivery within business days",
        "base_rate": 50,
        "per_km_rate": 2,
        "free_shipping_threshold": 1500,
        "estimated_days": "3-5",
    },
    {
        "name": "Express Shipping",
        "description": "Fast delivery for urgent orders",
        "base_rate": 100,
        "per_km_rate": 5,
        "free_shipping_threshold": 2500,
        "estimated_days": "1-2",
    },
    {
        "name": "Economic Shipping",
        "description": "Budget-friendly shipping option",
        "base_rate": 30,
        "per_km_rate": 1.5,
        "free_shipping_threshold": 1000,
        "estimated_days": "5-7",
    },
]

SAMPLE_ZONES = [
    {
        "name": "North India Zone",
        "states": ["Delhi", "Punjab", "Haryana", "Himachal Pradesh", "Uttarakhand", "Uttar Pradesh", "Chandigarh"],
        "rate": 60,
        "estimated_days": "2-4",
    },
    {
        "name": "West India Zone",
        "states": ["Maharashtra", "Gujarat", "Rajasthan", "Goa", "Dadra and Nagar Haveli and Daman and Diu"],
        "rate": 80,
        "estimated_days": "3-5",
    },
    {
        "name": "South India Zone",
        "states": ["Karnataka", "Tamil Nadu", "Kerala", "Andhra Pradesh", "Telangana", "Puducherry"],
        "rate": 100,
        "estimated_days": "4-6",
    },
    {
        "name": "East India Zone",
        "states": [
            "West Bengal", "Odisha", "Jharkhand", "Bihar", "Assam", "Meghalaya",
            "Manipur", "Mizoram", "Nagaland", "Tripura", "Arunachal Pradesh", "Sikkim",
        ],
        "rate": 90,
        "estimated_days": "4-6",
    },
    {
        "name": "Central India Zone",
        "states": ["Madhya Pradesh", "Chhattisgarh"],
        "rate": 70,
        "estimated_days": "3-5",
    },
]


def main():
    parser = argparse.ArgumentParser(description="Seed shipping rates and zones")
    parser.add_argument("--reset", action="store_true", help="Delete existing rates and zones first")
    args = parser.parse_args()

    init_db()
    with session_scope() as db:
        if args.reset:
            deleted_rates = db.query(ShippingRate).delete()
            deleted_zones = db.query(ShippingZone).delete()
            print(f"Removed {deleted_rates} rate(s) and {deleted_zones} zone(s)")

        existing_zones = {z.name for z in db.query(ShippingZone).all()}
        existing_rates = {r.name for r in db.query(ShippingRate).all()}

        rates = [ShippingRate(**r) for r in SAMPLE_RATES if r["name"] not in existing_rates]
        zones = [ShippingZone(**z) for z in SAMPLE_ZONES if z["name"] not in existing_zones]
        db.add_all(rates + zones)
        db.flush()

        print(f"Created {len(rates)} shipping rate(s):")
        for r in rates:
            print(f"  - {r.name}: base {r.base_rate}, free above {r.free_shipping_threshold}")
        print(f"Created {len(zones)} shipping zone(s):")
        for z in zones:
            print(f"  - {z.name}: {len(z.states)} states, rate {z.rate}")


if __name__ == "__main__":
    main()
