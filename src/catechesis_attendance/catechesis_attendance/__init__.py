"""Catechesis attendance package.

This package is organized by feature modules (attendance, roster, statistics,
reports) with a thin Flask controller layer and service/repository layers.
"""
