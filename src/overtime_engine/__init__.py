"""Tariff and approval engine for overtime hours and job expenses."""

__version__ = "0.1.0"
