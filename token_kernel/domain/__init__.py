"""Pure domain core: amounts, lifecycle transitions, DTOs and capabilities."""
