"""Test suite for vecload."""
