"""
HTTP plumbing stages: static assets, JSON bodies and cookies.
"""
