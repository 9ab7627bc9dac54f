"""
Document number generation
"""
from django.utils import timezone


def next_document_number(model, field, prefix, date_format='%Y%m%d', width=4):
    """
    Generate the next sequential document number for a model
    Format: PREFIX-<date>-NNNN, e.g. PO-20250101-0001
    """
    date_str = timezone.now().strftime(date_format)
    full_prefix = f'{prefix}-{date_str}-'

    last = model.objects.filter(
        **{f'{field}__startswith': full_prefix}
    ).order_by(f'-{field}').values_list(field, flat=True).first()

    if last:
        sequence = int(last.split('-')[-1]) + 1
    else:
        sequence = 1

    return f'{full_prefix}{sequence:0{width}d}'


def padded_reference(prefix, pk, width=4):
    """GRN-0007 style references derived from a primary key"""
    return f'{prefix}-{str(pk).zfill(width)}'
