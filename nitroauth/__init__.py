"""
NitroAuth - centralized authentication broker.

Mediates sign-in and coarse-grained site access for external applications:
decides per target application whether to issue a short-lived signed token
asserting identity and role, and lets those applications validate it.
"""

__version__ = "1.0.0"
