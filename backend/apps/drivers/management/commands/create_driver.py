from django.core.management.base import BaseCommand

from apps.drivers.services import DriverService


class Command(BaseCommand):
    help = "Creates (or completes) a driver login with its profile"

    def add_arguments(self, parser):
        parser.add_argument("email")
        parser.add_argument("password")
        parser.add_argument("--name", required=True)
        parser.add_argument("--phone", default="")

    def handle(self, *args, **options):
        profile = DriverService.create_driver_account(
            options["email"],
            options["password"],
            name=options["name"],
            phone=options["phone"],
        )
        self.stdout.write(self.style.SUCCESS(f"Driver #{profile.id} ready: {profile.name} ({profile.user.email})"))
