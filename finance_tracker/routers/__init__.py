# finance_tracker/routers/__init__.py
# Router package initialization

"""
API Routers for the finance tracker.

This package contains modular route definitions for different
aspects of the application:
- auth: Registration, sign-in and password management
- users: Current user profile
- transactions: Transaction CRUD and export
- categories, budgets, recurring: Per-user planning data
- trash: Restore or purge deleted items
- insights: AI insights and financial reports
- chatbot: Financial assistant
"""

__version__ = "1.0.0"
