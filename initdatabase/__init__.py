"""
init-database: prepare a data store for the resolution engine.

Applies the store schema and installs the default engine configuration
exactly once.
"""

__version__ = "0.1.0"

PRODUCT_ID = 6503
