"""
Print prescription adherence alerts, expiring prescriptions and refills due.
"""
import json

from django.core.management.base import BaseCommand, CommandError

from clinic.http_client import ApiClientError, get_api_client
from clinic.services.prescriptions import monitoring_report


class Command(BaseCommand):
    help = "List prescription monitoring alerts."

    def add_arguments(self, parser):
        parser.add_argument('--patient', dest='patient_id', help='Only this patient')
        parser.add_argument('--json', action='store_true', help='Print machine-readable JSON')

    def handle(self, *args, **options):
        try:
            prescriptions = get_api_client().manager('Prescription').list()
        except ApiClientError as exc:
            raise CommandError(f"Could not load prescriptions: {exc}") from exc

        report = monitoring_report(prescriptions, patient_id=options.get('patient_id'))
        if options['json']:
            self.stdout.write(json.dumps(report, indent=2))
            return

        for alert in report['alerts']:
            line = f"[{alert['severity']}] {alert['message']} (prescription {alert['prescription_id']})"
            style = self.style.ERROR if alert['severity'] == 'high' else self.style.WARNING
            self.stdout.write(style(line))
        for alert in report['expiration_alerts']:
            self.stdout.write(self.style.WARNING(
                f"{alert['medication_name']} ends {alert['end_date']} ({alert['urgency']})"
            ))
        for alert in report['refill_alerts']:
            self.stdout.write(self.style.NOTICE(
                f"{alert['medication_name']} refill due {alert['refill_date']} ({alert['refills_remaining']} left)"
            ))

        summary = report['summary']
        self.stdout.write(self.style.SUCCESS(
            f"{summary['active_prescriptions']} active prescriptions, "
            f"average adherence {summary['average_adherence']}%, "
            f"{summary['critical_alerts']} critical / {summary['warning_alerts']} warning alerts"
        ))
