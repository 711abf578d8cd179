"""Store, clock and unit-of-work adapters."""
