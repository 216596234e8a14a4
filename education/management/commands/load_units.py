"""
Django management command to load the unit catalog from a CSV file

The file needs ``unit_code`` and ``unit_name`` columns. Codes already in the
catalog are skipped.
"""
import csv

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from education.models import Unit


class Command(BaseCommand):
    help = 'Adds the units listed in a CSV file (unit_code, unit_name) to the catalog'

    def add_arguments(self, parser):
        parser.add_argument('csv_path')

    def handle(self, *args, **options):
        try:
            with open(options['csv_path'], newline='', encoding='utf-8') as handle:
                rows = list(csv.DictReader(handle))
        except OSError as e:
            raise CommandError(f"Cannot read {options['csv_path']}: {e}")

        if rows and not {'unit_code', 'unit_name'} <= set(rows[0]):
            raise CommandError('CSV must have unit_code and unit_name columns')

        created_count = 0
        skipped_count = 0

        with transaction.atomic():
            for row in rows:
                code = (row.get('unit_code') or '').strip()
                name = (row.get('unit_name') or '').strip()
                if not code or not name:
                    skipped_count += 1
                    self.stdout.write(self.style.WARNING(f'[-] Skipped incomplete row: {row}'))
                    continue

                unit, created = Unit.objects.get_or_create(unit_code=code, defaults={'unit_name': name})
                if created:
                    created_count += 1
                    self.stdout.write(self.style.SUCCESS(f'[+] Created: {code} - {name}'))
                else:
                    skipped_count += 1
                    self.stdout.write(self.style.WARNING(f'[-] Skipped (already exists): {code} - {unit.unit_name}'))

        self.stdout.write(
            self.style.SUCCESS(f'\nSummary: {created_count} units created, {skipped_count} skipped')
        )
