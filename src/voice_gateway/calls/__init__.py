"""Outbound call routes and call record persistence."""
