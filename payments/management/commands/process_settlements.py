import logging
import time

from django.core.management.base import BaseCommand

from payments.settlement import run_due_settlements

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Complete farmer/transporter transfers for settlements that are due"

    def add_arguments(self, parser):
        parser.add_argument("--loop", action="store_true", help="Keep polling instead of running once")
        parser.add_argument("--interval", type=float, default=2.0, help="Seconds between polls with --loop")

    def handle(self, *args, **options):
        if not options["loop"]:
            completed = run_due_settlements()
            self.stdout.write(self.style.SUCCESS(f"Completed {completed} settlement(s)"))
            return

        logger.info(f"Settlement worker started, polling every {options['interval']}s")
        try:
            while True:
                run_due_settlements()
                time.sleep(options["interval"])
        except KeyboardInterrupt:
            logger.info("Settlement worker stopped")
