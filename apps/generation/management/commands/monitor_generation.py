"""
Management command to monitor generation passes.

Usage:
    # List recent passes
    python manage.py monitor_generation --limit 10

    # Filter by status
    python manage.py monitor_generation --status failed

    # Show details for a specific pass
    python manage.py monitor_generation --run-id <run_id>

    # Show the passes of one record
    python manage.py monitor_generation --record-id <uuid>
"""

from django.core.management.base import BaseCommand

from apps.generation.models import GenerationRun


class Command(BaseCommand):
    help = "Monitor generation passes: list, filter, and show details."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=10,
            help="Number of passes to show (default: 10)",
        )
        parser.add_argument(
            "--status",
            type=str,
            help="Filter by pass status (running, succeeded, failed, skipped)",
        )
        parser.add_argument(
            "--run-id",
            type=str,
            help="Show details for a specific pass (by run_id)",
        )
        parser.add_argument(
            "--record-id",
            type=str,
            help="Only show passes of this intake record",
        )

    def handle(self, *args, **options):
        run_id = options.get("run_id")
        if run_id:
            self.show_run_details(run_id)
        else:
            self.list_runs(options.get("status"), options.get("record_id"), options.get("limit"))

    def list_runs(self, status, record_id, limit):
        qs = GenerationRun.objects.select_related("record")
        if status:
            qs = qs.filter(status__iexact=status)
        if record_id:
            qs = qs.filter(record_id=record_id)
        qs = qs.order_by("-created_at")[:limit]

        if not qs:
            self.stdout.write(self.style.WARNING("No generation runs found."))
            return

        self.stdout.write(
            f"{'Run ID':<34} {'Status':<10} {'Trigger':<8} {'Record':<38} "
            f"{'Failed stage':<20} {'Duration(ms)':<12}"
        )
        self.stdout.write("-" * 126)
        for run in qs:
            self.stdout.write(
                f"{run.run_id:<34} {run.status:<10} {run.trigger:<8} {str(run.record_id):<38} "
                f"{run.failed_stage or '-':<20} {run.total_duration_ms:<12.2f}"
            )

    def show_run_details(self, run_id):
        try:
            run = GenerationRun.objects.select_related("record").get(run_id=run_id)
        except GenerationRun.DoesNotExist:
            self.stdout.write(self.style.ERROR(f"Generation run not found: {run_id}"))
            return

        self.stdout.write(self.style.HTTP_INFO(f"Generation Run: {run.run_id}"))
        self.stdout.write(f"  Record: {run.record_id} [{run.record.status}]")
        self.stdout.write(f"  Status: {run.status}")
        self.stdout.write(f"  Trigger: {run.trigger}")
        self.stdout.write(f"  Worker: {run.worker or '-'}")
        self.stdout.write(f"  Created: {run.created_at:%Y-%m-%d %H:%M:%S}")
        self.stdout.write(f"  Completed: {run.completed_at}")
        self.stdout.write(f"  Duration: {run.total_duration_ms:.2f} ms")
        if run.error_message:
            self.stdout.write(self.style.ERROR(f"  Error: {run.error_message}"))
        for warning in run.warnings or []:
            self.stdout.write(self.style.WARNING(f"  Warning: {warning}"))
        self.stdout.write("")
        self.stdout.write("Stage Executions:")
        for stage in run.stage_executions.all():
            flag = " (fatal)" if stage.fatal else ""
            self.stdout.write(
                f"  - {stage.stage:<20} {stage.status:<10}{flag} Duration: {stage.duration_ms:.2f} ms"
            )
            if stage.error_message:
                self.stdout.write(self.style.ERROR(f"      Error: {stage.error_message}"))
        self.stdout.write("")
