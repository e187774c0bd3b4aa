"""
Print stock levels, inventory metrics and the reorder list.
"""
import json

from django.core.management.base import BaseCommand, CommandError

from clinic.http_client import ApiClientError, get_api_client
from clinic.services.inventory import STOCK_STATUSES, filter_items, inventory_metrics, reorder_list


class Command(BaseCommand):
    help = "Report inventory stock status, metrics and items to reorder."

    def add_arguments(self, parser):
        parser.add_argument('--category', help='Only items in this category')
        parser.add_argument('--status', choices=STOCK_STATUSES, help='Only items with this stock status')
        parser.add_argument('--json', action='store_true', help='Print machine-readable JSON')

    def handle(self, *args, **options):
        try:
            items = get_api_client().manager('InventoryItem').list()
        except ApiClientError as exc:
            raise CommandError(f"Could not load inventory: {exc}") from exc

        rows = filter_items(items, category=options.get('category'), status=options.get('status'))
        metrics = inventory_metrics(items)
        reorder = reorder_list(items)

        if options['json']:
            self.stdout.write(json.dumps({'items': rows, 'metrics': metrics, 'reorder': reorder}, indent=2))
            return

        for item in rows:
            line = f"{item.get('name')}: {item.get('current_stock')} {item.get('unit') or ''} [{item['stock_status']}]"
            if item['stock_status'] == 'in_stock':
                self.stdout.write(line)
            else:
                self.stdout.write(self.style.WARNING(line))

        self.stdout.write(
            f"Total {metrics['total_items']} items, value {metrics['total_value']:.2f}; "
            f"low {metrics['low_stock']}, out {metrics['out_of_stock']}, "
            f"expiring {metrics['expiring_soon']}, expired {metrics['expired']}"
        )
        for entry in reorder:
            self.stdout.write(self.style.NOTICE(f"Reorder {entry['name']}: {entry['reorder_quantity']}"))
        self.stdout.write(self.style.SUCCESS(f"Reported {len(rows)} items"))
