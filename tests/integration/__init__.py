"""Integration tests against a running tally service.

These tests require the service, PostgreSQL and Redis to be running with the
benchmark data loaded. Point API_BASE_URL at the service (default
http://localhost:8080).
"""
