"""HTTP transport for the Coup engine."""
