"""
API composition package: router registry and route fallback.
"""
