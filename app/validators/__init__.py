"""
app/validators package marker.
"""

from app.validators.date_normalizer import DateNormalizer, normalize_invoice_date

__all__ = [
    "DateNormalizer",
    "normalize_invoice_date",
]
