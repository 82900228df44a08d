"""HR administration backend package.

This package is organized by feature modules (employees, accommodations,
audit, ...) with a thin Flask controller layer over service/repository layers.
"""
