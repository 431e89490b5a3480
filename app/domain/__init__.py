"""
Domain layer package.

Contains the application error type, value objects and port interfaces.
No framework imports, no IO, no side effects.
"""
