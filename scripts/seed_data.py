"""
Seed the catalog and blog with sample products and articles.

Articles are authored by the first admin user, so run
create_admin_user.py first.

Usage: python scripts/seed_data.py [--reset]
"""
import argparse
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.models.base import SessionLocal, drop_db, init_db
from storefront.models.product import Product
from storefront.models.article import Article
from storefront.models.user import User
from storefront.services.article_service import ArticleService
from storefront.services.product_service import ProductService
from storefront.exceptions import StorefrontError

SAMPLE_PRODUCTS = [
    {
        "title": "Arduino Uno R3",
        "description": "ATmega328P microcontroller board with 14 digital I/O pins and USB connection.",
        "image": "https://images.example.com/products/arduino-uno.jpg",
        "categories": ["controllers"],
        "sku": "CTRL-UNO-R3",
        "price": 650,
        "stock": 40,
        "weight": 0.1,
        "length": 7,
        "breadth": 5.5,
        "height": 2,
    },
    {
        "title": "Raspberry Pi 4 Model B 4GB",
        "description": "Quad-core single board computer with dual micro-HDMI output and gigabit ethernet.",
        "image": "https://images.example.com/products/rpi4.jpg",
        "categories": ["controllers", "computers"],
        "sku": "CTRL-RPI4-4G",
        "price": 5200,
        "stock": 12,
        "weight": 0.15,
        "length": 10,
        "breadth": 7,
        "height": 3,
    },
    {
        "title": "HC-SR04 Ultrasonic Sensor",
        "description": "Non-contact distance sensor measuring 2cm to 400cm with 3mm accuracy.",
        "image": "https://images.example.com/products/hc-sr04.jpg",
        "categories": ["sensors"],
        "sku": "SNS-HCSR04",
        "price": 120,
        "stock": 150,
    },
    {
        "title": "SG90 Micro Servo",
        "description": "9g micro servo motor with 180 degree rotation for small robotics projects.",
        "image": "https://images.example.com/products/sg90.jpg",
        "categories": ["motors"],
        "sku": "MTR-SG90",
        "price": 150,
        "stock": 3,
        "weight": 0.02,
    },
]

SAMPLE_ARTICLES = [
    {
        "title": "Getting Started with Arduino",
        "content": (
            "<p>The Arduino Uno is the easiest way to start with electronics. "
            "In this guide we install the IDE, connect the board over USB and "
            "upload the classic Blink sketch to make the onboard LED flash.</p>"
        ),
        "featured_image": "https://images.example.com/articles/arduino-start.jpg",
        "status": "published",
        "tags": ["Arduino", "Beginner"],
        "categories": ["tutorials"],
    },
    {
        "title": "Measuring Distance with Ultrasonic Sensors",
        "content": (
            "<p>Ultrasonic sensors such as the HC-SR04 send a short burst of sound "
            "and time the echo. We wire the sensor to an Arduino and convert the "
            "echo pulse width to centimetres.</p>"
        ),
        "featured_image": "https://images.example.com/articles/ultrasonic.jpg",
        "status": "draft",
        "tags": ["sensors"],
        "categories": ["tutorials"],
    },
]


def main():
    parser = argparse.ArgumentParser(description="Seed sample products and articles")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    if args.reset:
        print("Dropping all tables...")
        drop_db()
    init_db()

    db = SessionLocal()
    try:
        products = ProductService(db)
        created = 0
        for data in SAMPLE_PRODUCTS:
            if db.query(Product).filter(Product.sku == data["sku"]).first():
                continue
            products.create_product(data)
            created += 1
        print(f"Created {created} product(s)")

        admin = db.query(User).filter(User.is_admin == True).order_by(User.id).first()  # noqa: E712
        if not admin:
            print("No admin user found, skipping articles (run create_admin_user.py first)")
            return 0

        articles = ArticleService(db)
        created = 0
        for data in SAMPLE_ARTICLES:
            if db.query(Article).filter(Article.title == data["title"]).first():
                continue
            try:
                articles.create_article(data, author=admin)
            except StorefrontError as e:
                print(f"Skipped '{data['title']}': {e.message}")
                continue
            created += 1
        print(f"Created {created} article(s) by {admin.username}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
