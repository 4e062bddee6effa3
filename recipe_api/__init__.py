"""Recipe and affiliate product REST API."""
