"""Automatic block proposal scheduler."""
