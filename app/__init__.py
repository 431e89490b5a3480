"""
Skill Mingle API: HTTP entry point of the Skill Mingle backend.

Application package root. Composes cross-cutting HTTP policies and
mounts independently owned feature routers behind one error boundary.

Layers:
    - domain: Application errors, rate-limit entities and ports (ABCs).
    - infrastructure: Adapters implementing domain ports (rate-limit storage).
    - interfaces: Locally served routers and Pydantic schemas.
    - api: Router registry and unmatched-route fallback.
    - shared: Cross-cutting concerns (pipeline stages, errors, logging).
"""
