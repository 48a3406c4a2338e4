"""Prometheus exporter for AWX / Ansible Tower inventory data."""

__version__ = "0.2.0"
