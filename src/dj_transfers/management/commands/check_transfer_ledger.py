import json

from django.core.management.base import BaseCommand, CommandError

from dj_transfers.reconciliation import ledger_breaks


class Command(BaseCommand):
    help = "Check that every ledger reference forms a complete transfer."

    def add_arguments(self, parser):
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the check result as JSON.",
        )
        parser.add_argument(
            "--no-fail-on-issues",
            action="store_true",
            help="Do not return non-zero exit code when breaks are found.",
        )

    def handle(self, *args, **options):
        snapshot = ledger_breaks()
        if options["json"]:
            self.stdout.write(json.dumps(snapshot, sort_keys=True))
        else:
            self.stdout.write(
                "Transfer ledger check: "
                f"references={snapshot['checked_references']}, "
                f"fees={snapshot['checked_fees']}, "
                f"breaks={len(snapshot['breaks'])}, "
                f"result={'PASS' if snapshot['is_consistent'] else 'FAIL'}"
            )
            for item in snapshot["breaks"]:
                self.stdout.write(f"  {item['reference']}: {item['issue']}")

        if not options["no_fail_on_issues"] and not snapshot["is_consistent"]:
            raise CommandError(
                "Transfer ledger check failed: "
                + ", ".join(item["reference"] for item in snapshot["breaks"])
            )
