"""
Shopp to WooCommerce catalog migrator.
"""

__version__ = "1.0.0"
