"""
Infrastructure Layer
=====================

Low-level technical concerns shared across modules:
- Logging setup
- Read models for users, restaurants and orders
"""
