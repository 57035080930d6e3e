"""
Shared API
==========

Middleware, exception handlers and caller identity shared by every router.
"""
