import json

from django.contrib.contenttypes.models import ContentType
from django.core import serializers

from .models import Activity, Payment, SalesInvoice, PurchaseInvoice


def log_activity(user, action_type, instance, description=None):
    """Write one ``Activity`` row for ``instance``.

    ``description`` defaults to "<Model> <instance> was <action_type>."; the
    account views pass their own to mention the amount moved.  Deleting a
    payment or an invoice stores it as JSON together with its allocations.
    """
    if description is None:
        description = f"{instance.__class__.__name__} {instance} was {action_type}."
    object_repr = ''

    if action_type == 'deleted':
        if isinstance(instance, Payment):
            payment_data = serializers.serialize('json', [instance])
            details_data = serializers.serialize('json', instance.details.all())
            object_repr = json.dumps({'payment': payment_data, 'allocations': details_data})
        elif isinstance(instance, (SalesInvoice, PurchaseInvoice)):
            invoice_data = serializers.serialize('json', [instance])
            details_data = serializers.serialize('json', instance.allocations.all())
            object_repr = json.dumps({'invoice': invoice_data, 'allocations': details_data})
        else:
            object_repr = serializers.serialize('json', [instance])

    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None

    Activity.objects.create(
        user=user,
        action_type=action_type,
        description=description,
        content_type=ContentType.objects.get_for_model(instance),
        object_id=instance.pk,
        object_repr=object_repr,
    )
