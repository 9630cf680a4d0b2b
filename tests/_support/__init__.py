"""Test support for recordkit tests: mapped test records and helpers."""
