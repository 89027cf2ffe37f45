"""
Cache package for the Cache Service.

Provides the Redis-backed entry store. Keys are namespaced under
``cache:`` so bulk listing and clearing never reach other tenants of the
same Redis database.
"""
