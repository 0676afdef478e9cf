"""Unit tests for individual components in isolation.

Transport behavior is scripted with httpx.MockTransport so chunk boundaries,
status codes and connection failures are controlled exactly.
"""
