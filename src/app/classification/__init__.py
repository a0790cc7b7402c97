"""Meeting classification: decides whether a recorded meeting gets minutes."""
