"""recordkit test-suite."""
