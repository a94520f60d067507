"""Domain services: aggregation, tabular adapters, data backends and upstream clients."""
