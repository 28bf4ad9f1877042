"""
Management command to run site generation outside the worker.

Usage:
    # Process one record now
    python manage.py run_generation --record-id <uuid>

    # Run a single sweep tick (reclaim stale leases, process one record)
    python manage.py run_generation --sweep

    # Reset every record stuck in "generating" back to pending
    python manage.py run_generation --reclaim-all

    # Create a sample intake record and generate it
    python manage.py run_generation --sample

    # Output result as JSON
    python manage.py run_generation --record-id <uuid> --json
"""

import json

from django.core.management.base import BaseCommand, CommandError

from apps.generation.guard import (
    next_eligible_record_id,
    reclaim_expired_leases,
)
from apps.generation.orchestrator import GenerationOrchestrator

SAMPLE_BUSINESS = {
    "business_name": "Harbor Street Bakery",
    "tagline": "Fresh bread every morning",
    "about": "A neighbourhood bakery baking sourdough, pastries and cakes since 2009.",
    "services": ["Sourdough loaves", "Celebration cakes", "Wholesale orders"],
    "phone": "+1 555 0100",
    "address": "12 Harbor Street",
    "social": {"instagram": "https://instagram.com/harborstreetbakery"},
}


class Command(BaseCommand):
    help = "Run site generation: one record, one sweep tick, or reclaim stuck records"

    def add_arguments(self, parser):
        parser.add_argument(
            "--record-id",
            type=str,
            help="Process this intake record",
        )
        parser.add_argument(
            "--sweep",
            action="store_true",
            help="Run one sweep tick",
        )
        parser.add_argument(
            "--reclaim-all",
            action="store_true",
            help="Return every generating record to pending, regardless of lease age",
        )
        parser.add_argument(
            "--sample",
            action="store_true",
            help="Create a sample intake record and process it",
        )
        parser.add_argument(
            "--email",
            type=str,
            default="owner@example.com",
            help="Contact address for --sample (default: owner@example.com)",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Output result as JSON",
        )

    def handle(self, *args, **options):
        if options["reclaim_all"]:
            count = reclaim_expired_leases(all_generating=True)
            self.stdout.write(self.style.SUCCESS(f"Reclaimed {count} record(s)."))
            return

        if options["sample"]:
            record_id = self._create_sample(options["email"])
            trigger = "manual"
        elif options["record_id"]:
            record_id = options["record_id"]
            trigger = "manual"
        elif options["sweep"]:
            reclaimed = reclaim_expired_leases()
            if reclaimed:
                self.stdout.write(f"Reclaimed {reclaimed} stale lease(s).")
            record_id = next_eligible_record_id()
            trigger = "sweep"
            if record_id is None:
                self.stdout.write(self.style.WARNING("No eligible records."))
                return
        else:
            raise CommandError("Must specify --record-id, --sweep, --reclaim-all or --sample")

        result = GenerationOrchestrator().process(record_id, trigger=trigger)

        if options["json"]:
            self.stdout.write(json.dumps(result.to_dict(), indent=2, default=str))
        else:
            self._display_result(result)

    def _create_sample(self, email: str) -> str:
        from apps.intake.services import IntakeValidationError, create_intake_record

        try:
            record = create_intake_record(email, dict(SAMPLE_BUSINESS), schedule=False)
        except IntakeValidationError as e:
            raise CommandError(str(e))
        self.stdout.write(f"Created sample record {record.pk}")
        return str(record.pk)

    def _display_result(self, result):
        style = {
            "generated": self.style.SUCCESS,
            "failed": self.style.ERROR,
        }.get(result.status, self.style.WARNING)

        self.stdout.write(style(f"Record {result.record_id}: {result.status.upper()}"))
        if result.run_id:
            self.stdout.write(f"  Run ID: {result.run_id}")
            self.stdout.write(f"  Duration: {result.duration_ms:.2f} ms")
        if result.stages_completed:
            self.stdout.write(f"  Stages: {' → '.join(result.stages_completed)}")
        if result.failed_stage:
            self.stdout.write(self.style.ERROR(f"  Failed stage: {result.failed_stage}"))
        if result.error:
            self.stdout.write(f"  Reason: {result.error}")
        for warning in result.warnings:
            self.stdout.write(self.style.WARNING(f"  Warning: {warning}"))
