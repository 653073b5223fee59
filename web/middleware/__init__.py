"""Middleware package for RedSalud-Bot web application."""

from .correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
