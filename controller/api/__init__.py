"""HTTP API for the fee controller."""
