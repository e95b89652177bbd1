"""
Management command to mark lots past their expiry date.

Usage:
    python manage.py expire_lots
    python manage.py expire_lots --dry-run
"""

from django.core.management.base import BaseCommand

from stockledger import stock
from stockledger.expiry import filter_expired_lots
from stockledger.models import Lot, LotStatus


class Command(BaseCommand):
    """Expire lots command."""

    help = 'Marca como vencidos os lotes com validade expirada'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra o que seria marcado sem executar'
        )

    def handle(self, *args, **options):
        if options['dry_run']:
            expired = filter_expired_lots(
                Lot.objects.filter(status=LotStatus.ACTIVE)
            ).count()

            self.stdout.write(f'{expired} lote(s) seria(m) marcado(s) como vencido(s)')
        else:
            count = stock.expire_lots()
            self.stdout.write(
                self.style.SUCCESS(f'{count} lote(s) marcado(s) como vencido(s)')
            )
