"""Seed a grocery catalog for local development.

Creates:
- Grocery categories
- Products with prices, stock levels and deterministic placeholder image URLs
- A store admin account
- The invoice logo (generated with Pillow) if none exists yet

Usage:
  python manage.py seed_catalog
  python manage.py seed_catalog --reset --seed 7 --admin-email admin@example.com
"""

import hashlib
import random
from decimal import Decimal, ROUND_HALF_UP
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageDraw, ImageFont

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from products.models import Category, Product

CATALOG = {
    'Fruits': ['Alphonso Mango', 'Banana Robusta', 'Green Apple', 'Pomegranate', 'Papaya'],
    'Vegetables': ['Tomato', 'Onion', 'Potato', 'Spinach', 'Cauliflower', 'Green Peas'],
    'Dairy': ['Full Cream Milk 1L', 'Paneer 200g', 'Curd 400g', 'Salted Butter 100g', 'Cheese Slices'],
    'Bakery': ['Whole Wheat Bread', 'Multigrain Bread', 'Butter Croissant', 'Rusk Toast'],
    'Staples': ['Basmati Rice 5kg', 'Toor Dal 1kg', 'Atta 10kg', 'Sugar 1kg', 'Iodised Salt 1kg'],
    'Beverages': ['Assam Tea 500g', 'Filter Coffee 250g', 'Mango Juice 1L', 'Coconut Water'],
    'Snacks': ['Masala Chips', 'Roasted Peanuts', 'Digestive Biscuits', 'Bhujia 400g'],
}

PRICE_RANGES = {
    'Fruits': (40, 250),
    'Vegetables': (20, 120),
    'Dairy': (30, 180),
    'Bakery': (25, 90),
    'Staples': (40, 650),
    'Beverages': (60, 450),
    'Snacks': (20, 150),
}


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def _stable_seed(text: str, *, length: int = 18) -> str:
    return hashlib.sha1(text.encode('utf-8', errors='ignore')).hexdigest()[:length]


def _image_url_for_name(name: str, *, width: int = 640, height: int = 480) -> str:
    """Deterministic placeholder image URL derived from the product name."""
    return f"https://picsum.photos/seed/{_stable_seed(name)}/{width}/{height}"


def _logo_bytes(text: str, *, size: int = 256) -> bytes:
    """Square gold badge with the store initials."""
    image = Image.new('RGB', (size, size), (184, 134, 11))
    draw = ImageDraw.Draw(image)
    draw.ellipse((12, 12, size - 12, size - 12), outline=(255, 255, 255), width=6)
    try:
        font = ImageFont.truetype('DejaVuSans-Bold.ttf', size // 3)
    except OSError:
        font = ImageFont.load_default()
    box = draw.textbbox((0, 0), text, font=font)
    x = (size - (box[2] - box[0])) / 2 - box[0]
    y = (size - (box[3] - box[1])) / 2 - box[1]
    draw.text((x, y), text, fill=(255, 255, 255), font=font)

    buf = BytesIO()
    image.save(buf, format='PNG')
    return buf.getvalue()


class Command(BaseCommand):
    help = 'Seed the database with grocery categories, products and an admin account.'

    def add_arguments(self, parser):
        parser.add_argument('--reset', action='store_true', help='Delete existing products and categories first.')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data.')
        parser.add_argument('--admin-email', type=str, default='admin@goldenbasket.com', help='Email of the admin account.')
        parser.add_argument('--admin-password', type=str, default='Admin123!', help='Password of the admin account.')
        parser.add_argument('--skip-logo', action='store_true', help='Do not generate the invoice logo.')

    def handle(self, *args, **options):
        rng = random.Random(options['seed'])

        with transaction.atomic():
            if options['reset']:
                deleted, _ = Product.objects.all().delete()
                Category.objects.all().delete()
                self.stdout.write(self.style.NOTICE(f'Removed {deleted} catalog rows.'))

            created = 0
            for category_name, names in CATALOG.items():
                category, _ = Category.objects.get_or_create(
                    name=category_name,
                    defaults={'description': f'Fresh {category_name.lower()} delivered to your door.'},
                )
                low, high = PRICE_RANGES[category_name]
                for name in names:
                    _, was_created = Product.objects.get_or_create(
                        name=name,
                        defaults={
                            'category': category,
                            'description': f'{name} from our {category_name.lower()} aisle.',
                            'price': _money(rng.uniform(low, high)),
                            'stock': rng.choice([0, 3, 12, 40, 75, 120]),
                            'images': [_image_url_for_name(name)],
                            'ratings': round(rng.uniform(3.2, 5.0), 1),
                        },
                    )
                    created += int(was_created)

            self._ensure_admin(options['admin_email'], options['admin_password'])

        if not options['skip_logo']:
            self._ensure_logo()

        self.stdout.write(self.style.SUCCESS(f'Seeding completed: {created} new products.'))

    def _ensure_admin(self, email, password):
        User = get_user_model()
        admin, created = User.objects.get_or_create(
            email=email,
            defaults={'username': email, 'first_name': 'Store', 'last_name': 'Admin', 'role': User.ROLE_ADMIN, 'is_staff': True, 'email_verified': True},
        )
        if created:
            admin.set_password(password)
            admin.save(update_fields=['password'])
            self.stdout.write(self.style.NOTICE(f'Admin account: {email} | password={password}'))
        elif admin.role != User.ROLE_ADMIN:
            admin.role = User.ROLE_ADMIN
            admin.save(update_fields=['role'])

    def _ensure_logo(self):
        path = Path(settings.INVOICE_LOGO_PATH)
        if path.exists():
            return
        path.parent.mkdir(parents=True, exist_ok=True)
        initials = ''.join(word[0] for word in settings.STORE_NAME.split()[:2]).upper()
        path.write_bytes(_logo_bytes(initials or 'GB'))
        self.stdout.write(self.style.NOTICE(f'Invoice logo written to {path}'))
