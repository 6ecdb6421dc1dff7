"""Job form test suite."""
