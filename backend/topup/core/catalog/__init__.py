"""
Catalog domain
"""
from topup.core.catalog.models import Product

__all__ = ["Product"]
