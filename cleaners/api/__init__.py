"""
HTTP surface: FastAPI app factory, routes, middleware and Prometheus metrics.

Import submodules directly (``from cleaners.api.app import create_app``).
"""
