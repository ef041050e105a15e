"""Domain layer: exceptions and value objects shared by all layers."""
