# File: src/parkspot_client/application/__init__.py
"""Application layer: session, services, DTOs and error classification"""
