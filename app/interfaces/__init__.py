"""
Interfaces layer package.

Contains the routers served by this repository itself and the
Pydantic schemas of the responses it writes. Feature routers are
owned elsewhere and plugged in through the router registry.
"""
