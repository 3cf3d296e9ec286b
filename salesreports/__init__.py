"""
Sales Reports

Report aggregation over point-of-sale sales, products and customers.
"""

__version__ = "1.0.0"
