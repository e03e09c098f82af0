"""
Django Iamporter - API client for the Iamport payment gateway

Provides:
- IamportClient for API communication (token, lookups, charges, cancellation)
- Typed exceptions that keep Iamport's messages verbatim
- Signals for payment events

Requirements:
- Python 3.12+
- Django 5.0+
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
