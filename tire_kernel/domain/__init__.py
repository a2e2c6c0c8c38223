"""Domain layer - value objects, state machine, and DTOs."""
