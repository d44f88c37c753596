"""
UniHub
Campus-restricted marketplace and freelance job board backend.

Architecture:
- MongoDB: every entity (users, jobs, applications, products, ...)
- Campus scoping: a user only sees and acts on records of their university
- Email: OTP login codes and best-effort notifications
"""

__version__ = "1.0.0"
