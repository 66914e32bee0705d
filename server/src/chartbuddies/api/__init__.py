"""HTTP API for the profile gate."""
