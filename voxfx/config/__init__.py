"""Configuration: runtime tuning (env) and the user effect selection (store)."""
