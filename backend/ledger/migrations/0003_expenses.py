import django.db.models.deletion
from django.db import migrations, models


def create_expense_sequence(apps, schema_editor):
    Sequence = apps.get_model('ledger', 'Sequence')
    Sequence.objects.get_or_create(
        sequence_name='expense',
        defaults={'prefix': 'EXP-', 'suffix': '', 'current_value': 0, 'format_length': 5},
    )


def remove_expense_sequence(apps, schema_editor):
    apps.get_model('ledger', 'Sequence').objects.filter(sequence_name='expense').delete()


class Migration(migrations.Migration):

    dependencies = [
        ('ledger', '0002_default_sequences'),
    ]

    operations = [
        migrations.CreateModel(
            name='Expense',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('expense_number', models.CharField(max_length=50, unique=True)),
                ('expense_date', models.DateField()),
                ('category', models.CharField(blank=True, max_length=100, null=True)),
                ('description', models.CharField(max_length=255)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=15)),
                ('payment_mode', models.CharField(choices=[('cash', 'Cash'), ('cheque', 'Cheque'), ('online', 'Online Transfer'), ('card', 'Credit/Debit Card')], default='cash', max_length=10)),
                ('bill_number', models.CharField(blank=True, max_length=50, null=True)),
                ('vendor_name', models.CharField(blank=True, max_length=255, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('is_deleted', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='expenses', to='ledger.account')),
            ],
            options={
                'db_table': 'expenses',
                'ordering': ['-expense_date', '-id'],
            },
        ),
        migrations.RunPython(create_expense_sequence, remove_expense_sequence),
    ]
