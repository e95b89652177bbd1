"""
Create initial Locations for a single store.

Locations are places where stock exists (or doesn't exist, for virtual).
"""

from django.db import migrations


def create_initial_locations(apps, schema_editor):
    """Create the basic locations: the store, its back room and a loss sink."""
    Location = apps.get_model('stockledger', 'Location')

    locations = [
        {
            'code': 'loja',
            'name': 'Loja',
            'kind': 'physical',
            'is_default': True,
        },
        {
            'code': 'deposito',
            'name': 'Depósito',
            'kind': 'physical',
            'is_default': False,
        },
        {
            'code': 'perdas',
            'name': 'Perdas',
            'kind': 'virtual',
            'is_default': False,
        },
    ]

    for loc_data in locations:
        Location.objects.get_or_create(
            code=loc_data['code'],
            defaults=loc_data
        )


def remove_initial_locations(apps, schema_editor):
    """Remove initial locations (for reverse migration)."""
    Location = apps.get_model('stockledger', 'Location')
    Location.objects.filter(
        code__in=['loja', 'deposito', 'perdas']
    ).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('stockledger', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(
            create_initial_locations,
            remove_initial_locations,
        ),
    ]
