"""Aggregate diagnostics over scored candidate pools and property listings."""
