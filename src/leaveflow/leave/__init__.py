"""Leave module — lifecycle, metrics, repository and role-scoped views."""
