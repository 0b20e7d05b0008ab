"""
thelook Metrics
Descriptive business metrics over the thelook e-commerce order items
"""

__version__ = "1.0.0"
