"""Voice provider webhook intake and call state processing."""
