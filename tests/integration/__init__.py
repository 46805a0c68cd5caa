"""
Integration Tests Package for the ParkSpot client

These tests build a complete client through ClientFactory over a scripted
backend and verify the layers work together:
1. Session credentials flowing into every service call
2. The authorization-failure interceptor across service boundaries
3. End-to-end booking journeys
"""
