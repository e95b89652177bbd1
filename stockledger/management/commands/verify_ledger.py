"""
Management command to audit balances against the movement log.

Usage:
    python manage.py verify_ledger
    python manage.py verify_ledger --fix
"""

from django.core.management.base import BaseCommand

from stockledger import stock


class Command(BaseCommand):
    """Ledger audit command."""

    help = 'Confere os saldos contra o histórico de movimentos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige os saldos divergentes'
        )

    def handle(self, *args, **options):
        drifted = stock.verify_ledger(fix=options['fix'])

        if not drifted:
            self.stdout.write(self.style.SUCCESS('Nenhuma divergência encontrada'))
            return

        for balance, total in drifted:
            self.stdout.write(
                f'{balance.sku} @ {balance.location.code}: razão = {total}'
            )

        if options['fix']:
            self.stdout.write(self.style.SUCCESS(f'{len(drifted)} saldo(s) corrigido(s)'))
        else:
            self.stdout.write(self.style.WARNING(f'{len(drifted)} saldo(s) divergente(s)'))
