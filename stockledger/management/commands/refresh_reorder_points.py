"""
Management command to refresh the cached reorder recommendations.

Usage:
    python manage.py refresh_reorder_points
    python manage.py refresh_reorder_points --location loja-centro
"""

from django.core.management.base import BaseCommand, CommandError

from stockledger import stock
from stockledger.models import Location


class Command(BaseCommand):
    """Refresh reorder recommendations command."""

    help = 'Recalcula e armazena em cache as recomendações de reposição'

    def add_arguments(self, parser):
        parser.add_argument(
            '--location',
            help='Código do local (padrão: todos)'
        )

    def handle(self, *args, **options):
        location = None
        if options['location']:
            try:
                location = Location.objects.get(code=options['location'])
            except Location.DoesNotExist:
                raise CommandError(f"Local '{options['location']}' não encontrado") from None

        refreshed = stock.refresh_reorder_cache(location)

        for code, plans in refreshed.items():
            self.stdout.write(f'{code}: {len(plans)} recomendação(ões)')
        self.stdout.write(
            self.style.SUCCESS(f'{len(refreshed)} local(is) atualizado(s)')
        )
