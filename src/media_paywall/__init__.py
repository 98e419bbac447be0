"""Paywalled media gallery service."""
