"""
Shared module package.

Contains cross-cutting concerns applied to every request:
- Request pipeline runner and stage contract
- Security stages (headers, CORS, rate limiting, sanitization)
- HTTP stages (static files, JSON body, cookies)
- Access logging and logging configuration
- Error boundary
"""
