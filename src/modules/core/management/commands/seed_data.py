from __future__ import annotations

import random
import uuid
from datetime import timedelta
from decimal import Decimal

import jwt
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.core.identity import Actor, Role
from modules.listings.constants import AnimalCategory, AnimalGender
from modules.listings.dtos import ChangeListingStatusDTO, CreateListingDTO
from modules.listings.repositories.django_repository import ListingDjangoRepository
from modules.listings.services import ListingService
from modules.orders.dtos import CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.workflow.constants import ListingStatus
from modules.workflow.engine import TransitionEngine
from modules.workflow.repositories.django_repository import DjangoStateStore

# Fixed ids so tokens printed on one run stay valid on the next.
DEMO_ACTORS = {
    Role.ADMIN: Actor(uuid.UUID("0190b0a0-0000-7000-8000-000000000001"), Role.ADMIN),
    Role.STAFF: Actor(uuid.UUID("0190b0a0-0000-7000-8000-000000000002"), Role.STAFF),
    Role.SHELTER: Actor(uuid.UUID("0190b0a0-0000-7000-8000-000000000003"), Role.SHELTER),
    Role.USER: Actor(uuid.UUID("0190b0a0-0000-7000-8000-000000000004"), Role.USER),
}


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--print-tokens",
            action="store_true",
            help="Print development bearer tokens for the demo actors.",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        store = DjangoStateStore()
        engine = TransitionEngine(store)
        listings = self._seed_listings(
            ListingService(ListingDjangoRepository(), engine, store)
        )
        orders_created = self._seed_orders(
            OrderService(OrderDjangoRepository(), engine, store)
        )

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: listings={listings}, orders={orders_created}"
            )
        )
        if options["print_tokens"]:
            self._print_tokens()

    def _seed_listings(self, service: ListingService) -> int:
        self.stdout.write("Creating listings...")
        shelter = DEMO_ACTORS[Role.SHELTER]
        admin = DEMO_ACTORS[Role.ADMIN]
        catalog = [
            ("Bolt", AnimalCategory.DOG, "Beagle", 3, AnimalGender.MALE),
            ("Luna", AnimalCategory.CAT, "Siamese", 2, AnimalGender.FEMALE),
            ("Kiwi", AnimalCategory.BIRD, "Cockatiel", 1, AnimalGender.MALE),
            ("Clover", AnimalCategory.RABBIT, "Holland Lop", 1, AnimalGender.FEMALE),
            ("Max", AnimalCategory.DOG, "Mixed", 6, AnimalGender.MALE),
            ("Nala", AnimalCategory.CAT, "Tabby", 4, AnimalGender.FEMALE),
        ]
        created = 0
        for name, category, breed, age, gender in catalog:
            if service.list_listings({"name": name, "shelter_id": shelter.id}).exists():
                continue
            listing = service.create_listing(
                CreateListingDTO(
                    name=name,
                    category=category,
                    breed=breed,
                    age=age,
                    gender=gender,
                    description=f"{name} is looking for a home.",
                ),
                shelter,
            )
            created += 1
            # Leave a couple in moderation.
            if random.random() < 0.7:
                service.change_status(
                    listing.id,
                    ChangeListingStatusDTO(
                        to_status=ListingStatus.AVAILABLE,
                        expected_version=listing.version,
                        note="Approved by seed",
                    ),
                    admin,
                )
        self.stdout.write(self.style.SUCCESS("Creating listings... Done!"))
        return created

    def _seed_orders(self, service: OrderService) -> int:
        self.stdout.write("Creating orders...")
        user = DEMO_ACTORS[Role.USER]
        orders_created = 0
        for i in range(10):
            order = service.create_order(
                CreateOrderDTO(
                    total_amount=Decimal(random.randint(500, 15000)) / 100,
                    shipping_address=f"{i + 1} Shelter Lane, Springfield",
                    notes=f"Seed order {i + 1}",
                ),
                user,
            )
            created_at = timezone.now() - timedelta(days=random.randint(0, 30))
            service.list_orders(user).filter(id=order.id).update(created_at=created_at)
            orders_created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return orders_created

    def _print_tokens(self) -> None:
        expires = timezone.now() + timedelta(days=7)
        for role, actor in DEMO_ACTORS.items():
            token = jwt.encode(
                {"sub": str(actor.id), "role": role, "exp": expires},
                settings.IDENTITY_JWT_SIGNING_KEY,
                algorithm=settings.IDENTITY_JWT_ALGORITHM,
            )
            self.stdout.write(f"{role}: Bearer {token}")
