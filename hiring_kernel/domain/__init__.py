"""Pure domain logic: request state, transitions, metric predicates, budget arithmetic."""
