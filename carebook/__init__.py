"""
Carebook

A FastAPI-based service for booking healthcare appointments between
patients and doctors, with role-based access control and payment of
consultation fees through an external payment processor.
"""

__version__ = "1.0.0"
