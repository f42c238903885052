"""Case review portal API."""
