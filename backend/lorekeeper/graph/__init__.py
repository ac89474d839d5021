"""Story graph query templates."""
