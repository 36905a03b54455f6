"""Community race calendar service."""
