from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.orders.constants import PROGRESS_STATUSES, OrderStatus
from modules.orders.dtos import CheckoutItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import compute_totals
from modules.orders.transitions import resolve_transition

DEMO_ORDERS = [
    # order number, customer, email, final status, items (name, price, qty)
    (
        "EC-100001",
        "Alya Putri",
        "alya@example.com",
        OrderStatus.PENDING,
        [("Linen Overshirt", "89.00", 1), ("Canvas Tote", "24.50", 2)],
    ),
    (
        "EC-100002",
        "Bima Santoso",
        "bima@example.com",
        OrderStatus.PAID,
        [("Merino Crew Sweater", "129.00", 1), ("Wool Socks", "14.00", 3)],
    ),
    (
        "EC-100003",
        "Citra Lestari",
        "citra@example.com",
        OrderStatus.SHIPPED,
        [("Leather Weekender", "289.00", 1)],
    ),
    (
        "EC-100004",
        "Dewi Anggraini",
        "dewi@example.com",
        OrderStatus.DELIVERED,
        [("Ceramic Pour-Over Set", "58.00", 1), ("Stoneware Mug", "19.00", 4)],
    ),
    (
        "EC-100005",
        "Eko Prasetyo",
        "eko@example.com",
        OrderStatus.CANCELED,
        [("Trail Running Shoes", "149.00", 1)],
    ),
]


class Command(BaseCommand):
    help = "Seed database with storefront demo users and orders."

    def handle(self, *args, **options):
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        orders_created = self._seed_orders()

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: users={users_created}, orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser(
                "admin", email="admin@example.com", password="admin123"
            )
            created += 1
        if not User.objects.filter(username="alya").exists():
            User.objects.create_user(
                "alya", email="alya@example.com", password="alya12345"
            )
            created += 1
        return created

    @transaction.atomic
    def _seed_orders(self) -> int:
        self.stdout.write("Creating orders...")
        repository = OrderDjangoRepository()
        created = 0

        for index, (number, name, email, final_status, items) in enumerate(DEMO_ORDERS):
            if repository.get_by_order_number(number):
                continue

            cart = [
                CheckoutItemDTO(product_name=item, price=Decimal(price), quantity=qty)
                for item, price, qty in items
            ]
            totals = compute_totals(cart)
            order = repository.create(
                {
                    "order_number": number,
                    "customer_name": name,
                    "customer_email": email,
                    "subtotal": totals.subtotal,
                    "shipping_cost": totals.shipping_cost,
                    "tax": totals.tax,
                    "discount": totals.discount,
                    "total": totals.total,
                    "shipping_address": {
                        "address_line1": f"Jl. Melati No. {index + 1}",
                        "city": "Jakarta",
                        "postal_code": "10110",
                    },
                    "items": [
                        {
                            "product_name": item.product_name,
                            "unit_price": item.price,
                            "quantity": item.quantity,
                        }
                        for item in cart
                    ],
                }
            )

            occurred_at = order.created_at
            for step in self._path_to(final_status):
                occurred_at += timedelta(seconds=1)
                transition = resolve_transition(order.status, order.payment_status, step)
                if not transition.is_noop:
                    order = repository.apply_transition(order, transition, occurred_at)
            created += 1

        return created

    @staticmethod
    def _path_to(final_status: OrderStatus) -> list[str]:
        if final_status == OrderStatus.CANCELED:
            return [OrderStatus.CANCELED]
        steps = list(PROGRESS_STATUSES)
        return steps[1 : steps.index(final_status) + 1]
