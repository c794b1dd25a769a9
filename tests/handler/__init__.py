"""Tests for component handlers."""
