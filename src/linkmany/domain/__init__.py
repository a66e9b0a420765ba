"""Domain layer: reconciliation logic and the ports it depends on."""
