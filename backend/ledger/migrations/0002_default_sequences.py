from django.db import migrations

DEFAULT_SEQUENCES = [
    ('payment_in', 'PI-'),
    ('payment_out', 'PO-'),
    ('sales_invoice', 'INV-'),
    ('purchase_invoice', 'PUR-'),
]


def create_sequences(apps, schema_editor):
    Sequence = apps.get_model('ledger', 'Sequence')
    for name, prefix in DEFAULT_SEQUENCES:
        Sequence.objects.get_or_create(
            sequence_name=name,
            defaults={'prefix': prefix, 'suffix': '', 'current_value': 0, 'format_length': 5},
        )


def remove_sequences(apps, schema_editor):
    Sequence = apps.get_model('ledger', 'Sequence')
    Sequence.objects.filter(sequence_name__in=[name for name, _ in DEFAULT_SEQUENCES]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ('ledger', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_sequences, remove_sequences),
    ]
