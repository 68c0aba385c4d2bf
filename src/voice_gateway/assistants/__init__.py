"""Voice assistant management routes."""
