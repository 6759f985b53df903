"""Framework independent building blocks: persistence, security, pagination, normalization and metrics."""
