"""
Test Suite

Structure:
- tests/unit/: Tests for individual components (config, pipeline, REST client,
  streaming supervisor, dispatcher, schemas)

Uses pytest with pytest-asyncio. Network access is replaced by fake
transports and fake websocket connections defined in conftest.py.
"""
