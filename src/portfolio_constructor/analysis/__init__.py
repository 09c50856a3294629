"""Reporting helpers built on optimization results."""
