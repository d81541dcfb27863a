"""Pure domain layer: value objects, DTOs, workflows, clock."""
