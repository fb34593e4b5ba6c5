from django.core.management.base import BaseCommand

from chat.services import ConversationMaintenanceService


class Command(BaseCommand):
    help = "Report conversations that duplicate a (user pair, job) key, optionally merging them"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fix",
            action="store_true",
            help="Merge each duplicate group into its oldest conversation",
        )

    def handle(self, *args, **options):
        fix = options.get("fix", False)

        groups = ConversationMaintenanceService.find_duplicates()
        if not groups:
            self.stdout.write(self.style.SUCCESS("No duplicate conversations found"))
            return

        self.stdout.write(self.style.WARNING(f"Found {len(groups)} duplicate group(s)"))

        moved_total = 0
        for keep, *duplicates in groups:
            job = keep.job_id or "general"
            self.stdout.write(
                f"  users {keep.user_lower_id}/{keep.user_higher_id} job={job}: "
                f"keep {keep.pk}, {len(duplicates)} duplicate(s)"
            )
            if fix:
                moved_total += ConversationMaintenanceService.merge(keep, duplicates)

        if fix:
            self.stdout.write(
                self.style.SUCCESS(f"Merged {len(groups)} group(s), moved {moved_total} message(s)")
            )
        else:
            self.stdout.write("Run with --fix to merge duplicates into the oldest conversation.")
