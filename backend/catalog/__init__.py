"""Read-only catalog API (officers, service categories)."""
