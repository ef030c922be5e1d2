"""Step graphs: routes, steps, hooks and agent definitions."""
