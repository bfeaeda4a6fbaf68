"""
                        Services Module

Business logic of the ordering service plus the external adapters.
Each adapter has a Mock (development) and a Real (staging/production)
implementation chosen by ENV_MODE.

Services:
    - orders: order lifecycle (create, advance status, payments)
    - analytics: dashboard summaries and top products
    - profiles: profile / account resolution and signup
    - catalog: account, users, menu, inventory, suppliers, customers,
      locations, message log
    - trucks: truck discovery across accounts
    - identity: bearer token verification
    - payment: Stripe payments and refunds
    - geo: Google Maps geocoding
    - notifications: Twilio SMS and SendGrid email
    - excel_manager: locked per-account Excel exports
"""

from foodtruck.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
