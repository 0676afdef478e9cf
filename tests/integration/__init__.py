"""Integration tests for components working together as a system.

Runs ChatSession and the analysis client against a FastAPI app that speaks
the assistant's wire protocol, through httpx.ASGITransport.
"""
