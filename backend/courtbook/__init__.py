"""Court, session and token-pool booking core."""
