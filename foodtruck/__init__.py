"""
                Food Truck Ordering Service

Backend for food-truck owners to manage their menu and orders, and for
customers to browse trucks and place orders.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
