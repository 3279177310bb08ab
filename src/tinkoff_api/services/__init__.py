"""Exchange engine, auth flows and their primitives."""
