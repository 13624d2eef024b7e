from decimal import Decimal, InvalidOperation

from django.core.management.base import BaseCommand, CommandError

from apps.stores.services import StoreService


class Command(BaseCommand):
    help = "Creates (or completes) a store login with its pickup profile"

    def add_arguments(self, parser):
        parser.add_argument("email")
        parser.add_argument("password")
        parser.add_argument("--name", required=True)
        parser.add_argument("--address", required=True)
        parser.add_argument("--phone", default="")
        parser.add_argument("--lat")
        parser.add_argument("--lng")

    def handle(self, *args, **options):
        lat, lng = options["lat"], options["lng"]
        if (lat is None) != (lng is None):
            raise CommandError("--lat and --lng must be given together")

        try:
            lat = Decimal(lat) if lat is not None else None
            lng = Decimal(lng) if lng is not None else None
        except InvalidOperation:
            raise CommandError("--lat/--lng must be decimal degrees")

        store = StoreService.create_store_account(
            options["email"],
            options["password"],
            name=options["name"],
            address=options["address"],
            phone=options["phone"],
            lat=lat,
            lng=lng,
        )

        self.stdout.write(self.style.SUCCESS(f"Store #{store.id} ready: {store.name} ({store.user.email})"))
        if not store.has_coordinates:
            self.stdout.write("Pickup coordinates will be geocoded on the first quote.")
