# File: src/parkspot_client/infrastructure/__init__.py
"""Infrastructure layer: HTTP transport, session storage, messaging and wiring"""
