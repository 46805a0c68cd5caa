# File: src/parkspot_client/domain/__init__.py
"""Domain layer: entities, errors, normalization and aggregates"""
