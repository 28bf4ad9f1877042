"""
List notice drivers and the targets a generated site will notify.

Usage:
    python manage.py list_notify_drivers
    python manage.py list_notify_drivers --verbose
"""

from django.core.management.base import BaseCommand

from apps.notify.drivers import DRIVER_REGISTRY, driver_enabled, get_driver
from apps.notify.notifier import get_notify_targets


class Command(BaseCommand):
    help = "List notice drivers and check the configured notify targets"

    def add_arguments(self, parser):
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show the config keys each driver accepts",
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("Drivers"))
        for name, driver_class in DRIVER_REGISTRY.items():
            state = "enabled" if driver_enabled(name) else "skipped"
            self.stdout.write(f"  {name:<10} {state:<8} {driver_class.description}")
            if options["verbose"]:
                required = ", ".join(driver_class.required_config)
                optional = ", ".join(driver_class.optional_config)
                self.stdout.write(f"             required: {required}")
                self.stdout.write(f"             optional: {optional}")

        self.stdout.write("")
        self.stdout.write(self.style.SUCCESS("Targets"))
        targets = get_notify_targets()
        if not targets:
            self.stdout.write(self.style.WARNING("  No notify targets configured."))
            return

        for target in targets:
            driver = get_driver(target.driver)
            if driver is None:
                check = self.style.ERROR("unknown driver")
            elif not driver.validate_config(target.config):
                check = self.style.ERROR("invalid config")
            else:
                check = "ok"
            row = f"  {target.name:<20} {target.driver:<8} {target.audience:<9}"
            self.stdout.write(f"{row} {check}")
