"""Unit tests for VoiceFeed.

This package contains test modules for all components of the VoiceFeed application.
Tests use pytest with asyncio support and replace translation clients and HTTP calls via monkeypatch.
"""
