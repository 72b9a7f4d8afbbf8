"""Domain layer: entities, store interfaces and the lifecycle engine."""
