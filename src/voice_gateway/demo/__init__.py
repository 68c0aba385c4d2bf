"""Public landing page demo calls."""
