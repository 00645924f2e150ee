"""HTTP and serverless entry points."""
