"""User repository adapters.

Persistence is kept behind an abstract repository; the bundled
implementation keeps users in process memory.
"""
