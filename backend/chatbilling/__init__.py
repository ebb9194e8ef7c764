"""Billing & chat API package."""
