"""
Order extraction utilities

Address-line detection, customer name cleaning and number parsing.
"""

from .address_filter import AddressFilter
from .name_cleaner import CustomerNameCleaner
from .numbers import clean_number

__all__ = ['AddressFilter', 'CustomerNameCleaner', 'clean_number']
