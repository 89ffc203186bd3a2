from django.core.management.base import BaseCommand

from core_backend.exceptions import OrderEngineError
from orders.services import OrderConsistencyService


class Command(BaseCommand):
    help = "Compare every order with its customer copy and optionally repair divergent copies"

    def add_arguments(self, parser):
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Rewrite divergent or missing customer copies from the global order",
        )

    def handle(self, *args, **options):
        repair = options["repair"]

        divergences = OrderConsistencyService.find_divergences()
        if not divergences:
            self.stdout.write(self.style.SUCCESS("All order copies are consistent"))
            return

        for divergence in divergences:
            detail = f" fields: {', '.join(divergence.fields)}" if divergence.fields else ""
            self.stdout.write(
                self.style.WARNING(
                    f"Order {divergence.order_id} (customer {divergence.customer_id}): "
                    f"{divergence.reason}{detail}"
                )
            )

        if not repair:
            self.stdout.write(
                self.style.WARNING(f"{len(divergences)} divergent order(s) found. Run with --repair to fix.")
            )
            return

        repaired = 0
        for divergence in divergences:
            try:
                OrderConsistencyService.repair(divergence.order_id)
                repaired += 1
            except OrderEngineError as e:
                self.stdout.write(
                    self.style.ERROR(f"Error repairing order {divergence.order_id}: {e.message}")
                )

        self.stdout.write(self.style.SUCCESS(f"Repaired {repaired} of {len(divergences)} order(s)"))
