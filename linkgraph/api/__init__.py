"""HTTP API for link graph builds."""
