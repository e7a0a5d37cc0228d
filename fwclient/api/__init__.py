"""HTTP client, request interception and failure classification."""
