"""Counter store adapters.

The limiter only needs a tiny key-value contract (get/set/increment with TTL),
so the store can be in-process memory for development and tests or Redis when
several workers must share one window.
"""
