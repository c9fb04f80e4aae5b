"""Domain layer: resource graph, reconciliation, seeding."""
