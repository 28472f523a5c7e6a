"""Domain layer: entities and the interfaces infrastructure implements."""
