"""Application package for the academy content backend.

This package exposes the service, repository, policy and model modules
used by the FastAPI application. It is intentionally lightweight;
individual modules contain the concrete implementations and
documentation.
"""
