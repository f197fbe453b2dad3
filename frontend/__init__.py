"""Containerized Flask front-end with Kubernetes acceptance checks."""

__version__ = "0.1.0"
